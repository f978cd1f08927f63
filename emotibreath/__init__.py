"""
EmotiBreath - emotion analysis and guided breathing engine.

This package detects Plutchik emotion dyads from a user's check-in, recommends
a breathing pattern for the detected state and drives timed breathing sessions.
"""

__version__ = "0.1.0"

"""
Exceptions raised by the EmotiBreath engine.

Validation errors reject bad input before any state changes, transition errors
are recoverable and mean the caller should re-check the session status. Missing
dyad rules or pattern mappings are never errors.
"""


class EmotiBreathError(Exception):
    """Base class for all engine errors."""


class CatalogError(EmotiBreathError):
    """Reference data is inconsistent (duplicate or self-paired dyad rules)."""


class InvalidPatternError(EmotiBreathError, ValueError):
    """A breathing pattern cannot drive a timed session."""


class InvalidTransitionError(EmotiBreathError):
    """A session operation was called from an incompatible status."""


class SessionActiveError(InvalidTransitionError):
    """A session is already running or paused on this engine."""


class UnknownPatternError(EmotiBreathError, KeyError):
    """No pattern with the requested id exists in the catalog."""

    def __init__(self, pattern_id: str) -> None:
        super().__init__(pattern_id)
        self.pattern_id = pattern_id

    def __str__(self) -> str:
        return f"Unknown breathing pattern: {self.pattern_id}"

"""
Shared data models for the EmotiBreath engine.

This module defines the core domain models used across multiple layers
of the application (detector, recommender, session state machine, API, CLI).
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Arousal(str, Enum):
    """Autonomic arousal category an emotion belongs to."""

    HYPERAROUSAL = "hyperarousal"
    HYPOAROUSAL = "hypoarousal"
    BALANCE = "balance"


class DyadTier(str, Enum):
    """Distance between the two emotions of a dyad on the wheel."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    TERTIARY = "tertiary"


class Phase(str, Enum):
    """Segment of a breathing session."""

    IDLE = "idle"
    INHALE = "inhale"
    HOLD_IN = "holdIn"
    EXHALE = "exhale"
    HOLD_OUT = "holdOut"
    COMPLETE = "complete"


class Status(str, Enum):
    """Lifecycle status of a breathing session."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# Fixed order phases are visited within one cycle.
CYCLE_PHASES: tuple[Phase, ...] = (
    Phase.INHALE,
    Phase.HOLD_IN,
    Phase.EXHALE,
    Phase.HOLD_OUT,
)

TERMINAL_STATUSES = frozenset({Status.CANCELLED, Status.COMPLETED})


# MARK: - Emotions


class BaseEmotion(BaseModel):
    """A primary emotion from Plutchik's wheel."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Stable emotion identifier")
    label: str = Field(..., description="Display name")
    icon: str = Field("", description="Emoji shown next to the label")
    color_tag: str = Field("", description="Color token used by the UI")
    opposite: str | None = Field(None, description="Id of the opposing emotion")
    arousal: Arousal = Field(Arousal.BALANCE, description="Arousal category")
    low_label: str = Field("", description="Name at intensity 1-2")
    mid_label: str = Field("", description="Name at intensity 3-4")
    high_label: str = Field("", description="Name at intensity 5")

    def intensity_label(self, intensity: int) -> str:
        """Name of this emotion at the given intensity."""
        if intensity <= 2:
            return self.low_label or self.label
        if intensity <= 4:
            return self.mid_label or self.label
        return self.high_label or self.label


class SelectedEmotion(BaseModel):
    """One emotion picked by the user during a check-in."""

    model_config = ConfigDict(frozen=True)

    emotion_id: str = Field(..., description="Base emotion or emotional state id")
    intensity: int = Field(..., ge=1, le=5, description="Intensity from 1 to 5")


class DyadRule(BaseModel):
    """Two base emotions that combine into a named secondary emotion."""

    model_config = ConfigDict(frozen=True)

    a: str
    b: str
    result: str
    label: str
    description: str = ""
    tier: DyadTier = DyadTier.PRIMARY

    @property
    def key(self) -> frozenset[str]:
        return frozenset((self.a, self.b))


class DetectedDyad(BaseModel):
    """A dyad found in a set of selections."""

    model_config = ConfigDict(frozen=True)

    result: str
    label: str
    description: str
    tier: DyadTier
    strength: int = Field(..., description="Sum of both contributing intensities")
    emotions: tuple[str, str] = Field(..., description="Contributing emotion ids")


# MARK: - Breathing


class BreathPattern(BaseModel):
    """
    A named breathing configuration.

    A phase duration of 0 skips that phase. A pattern with ``cycles = 0`` has no
    timed structure and is meant for guided meditation, not the session engine.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    inhale_ms: int = Field(0, ge=0)
    hold_in_ms: int = Field(0, ge=0)
    exhale_ms: int = Field(0, ge=0)
    hold_out_ms: int = Field(0, ge=0)
    cycles: int = Field(0, ge=0)

    def duration_of(self, phase: Phase) -> int:
        """Configured duration of ``phase`` in milliseconds."""
        durations = {
            Phase.INHALE: self.inhale_ms,
            Phase.HOLD_IN: self.hold_in_ms,
            Phase.EXHALE: self.exhale_ms,
            Phase.HOLD_OUT: self.hold_out_ms,
        }
        return durations.get(phase, 0)

    def phases(self) -> list[Phase]:
        """Phases of one cycle with a non-zero duration, in order."""
        return [phase for phase in CYCLE_PHASES if self.duration_of(phase) > 0]

    @property
    def cycle_ms(self) -> int:
        return sum(self.duration_of(phase) for phase in CYCLE_PHASES)

    @property
    def total_ms(self) -> int:
        return self.cycle_ms * self.cycles

    @property
    def is_timed(self) -> bool:
        return self.cycles >= 1 and self.cycle_ms > 0


class SessionState(BaseModel):
    """Mutable state of one breathing session."""

    phase: Phase = Phase.IDLE
    cycle_index: int = 0
    elapsed_in_phase_ms: float = 0.0
    status: Status = Status.IDLE


class Progress(BaseModel):
    """Derived, read-only view of a session's position."""

    model_config = ConfigDict(frozen=True)

    phase: Phase
    status: Status
    cycle_index: int
    fraction_of_phase_elapsed: float
    fraction_of_cycle_elapsed: float
    fraction_of_session_elapsed: float
    remaining_in_phase_ms: float = 0.0


class SessionSummary(BaseModel):
    """Record of a finished session handed to the persistence collaborator."""

    pattern_id: str
    pattern_name: str
    cycles_completed: int
    duration_ms: int
    completed_at: datetime
    status: Status


# MARK: - Recommendation


class Recommendation(BaseModel):
    """Suggested pattern for a check-in, with informational context."""

    pattern_id: str
    reason: str
    emotion_id: str | None = None
    arousal: Arousal = Arousal.BALANCE
    guidance_topics: list[str] = Field(default_factory=list)
    dyads: list[DetectedDyad] = Field(default_factory=list)

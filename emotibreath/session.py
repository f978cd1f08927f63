"""
Guided breathing session state machine.

A session walks a breathing pattern phase by phase (inhale, hold, exhale, hold)
for a fixed number of cycles. It advances by elapsed time rather than by a
fixed tick rate, so irregular or long-delayed ticks (a backgrounded device, a
throttled timer) are caught up exactly: no time is lost or counted twice.

The time source is injected. Tests drive sessions with explicit deltas or a
fake clock; the server and CLI use the monotonic clock.
"""

import math
import time
from collections.abc import Callable
from datetime import datetime

import structlog

from .errors import InvalidPatternError, InvalidTransitionError
from .models import (
    TERMINAL_STATUSES,
    BreathPattern,
    Phase,
    Progress,
    SessionState,
    SessionSummary,
    Status,
)

logger = structlog.get_logger(__name__)

Clock = Callable[[], float]
PhaseListener = Callable[[Phase, int], None]


def monotonic_ms() -> float:
    """Monotonic clock in milliseconds."""
    return time.monotonic() * 1000.0


def validate_pattern(pattern: BreathPattern) -> None:
    """
    Check that a pattern can drive a timed session.

    Raises:
        InvalidPatternError: If the pattern has no cycles or no timed phase.
    """
    if pattern.cycles < 1:
        raise InvalidPatternError(
            f"Pattern '{pattern.id}' has {pattern.cycles} cycles, at least 1 required"
        )
    if not pattern.phases():
        raise InvalidPatternError(f"Pattern '{pattern.id}' has no timed phase")


class BreathingSession:
    """
    One timed breathing session.

    The session exclusively owns its :class:`SessionState`. ``completed`` and
    ``cancelled`` are its only terminal statuses; once reached, ticks are
    ignored.
    """

    def __init__(
        self,
        pattern: BreathPattern,
        clock: Clock | None = None,
        on_phase_change: PhaseListener | None = None,
    ) -> None:
        validate_pattern(pattern)

        self.pattern = pattern
        self._clock = clock or monotonic_ms
        self._on_phase_change = on_phase_change
        self._phases = pattern.phases()
        self._position = 0
        self._last_tick = self._clock()

        self.state = SessionState(
            phase=self._phases[0],
            cycle_index=0,
            elapsed_in_phase_ms=0.0,
            status=Status.RUNNING,
        )

        logger.info(
            "session_started",
            pattern_id=pattern.id,
            cycles=pattern.cycles,
            phases=[phase.value for phase in self._phases],
        )

    @classmethod
    def start(
        cls,
        pattern: BreathPattern,
        clock: Clock | None = None,
        on_phase_change: PhaseListener | None = None,
    ) -> "BreathingSession":
        """Validate ``pattern`` and start a running session on it."""
        return cls(pattern, clock=clock, on_phase_change=on_phase_change)

    # MARK: - Properties

    @property
    def status(self) -> Status:
        return self.state.status

    @property
    def is_finished(self) -> bool:
        return self.state.status in TERMINAL_STATUSES

    @property
    def elapsed_ms(self) -> float:
        """Pattern time consumed so far, excluding paused time."""
        if self.state.status == Status.COMPLETED:
            return float(self.pattern.total_ms)
        return (
            self.state.cycle_index * self.pattern.cycle_ms
            + self._elapsed_in_cycle()
        )

    # MARK: - Transitions

    def tick(self, delta_ms: float | None = None) -> SessionState:
        """
        Advance the session by elapsed time.

        Args:
            delta_ms: Time elapsed since the previous tick. When omitted, it is
                measured with the session clock.

        Returns:
            The session state after the tick
        """
        if delta_ms is not None and not (math.isfinite(delta_ms) and delta_ms >= 0):
            raise ValueError(
                f"delta_ms must be finite and not negative, got {delta_ms}"
            )

        now = self._clock()
        measured = now - self._last_tick
        self._last_tick = now

        if self.state.status != Status.RUNNING:
            return self.state

        if delta_ms is not None:
            delta = delta_ms
        elif math.isfinite(measured):
            delta = max(measured, 0.0)
        else:
            # Broken clock reading
            delta = 0.0
        self.state.elapsed_in_phase_ms += delta

        while self.state.status == Status.RUNNING:
            duration = self.pattern.duration_of(self.state.phase)
            if self.state.elapsed_in_phase_ms < duration:
                break
            self.state.elapsed_in_phase_ms -= duration
            self._advance()

        return self.state

    def pause(self) -> None:
        """Freeze the session; ticks are ignored until :meth:`resume`."""
        if self.state.status != Status.RUNNING:
            raise InvalidTransitionError(
                f"Cannot pause a session that is {self.state.status.value}"
            )
        self.state.status = Status.PAUSED
        logger.info("session_paused", pattern_id=self.pattern.id)

    def resume(self) -> None:
        """Resume a paused session without counting the time spent paused."""
        if self.state.status != Status.PAUSED:
            raise InvalidTransitionError(
                f"Cannot resume a session that is {self.state.status.value}"
            )
        self.state.status = Status.RUNNING
        self._last_tick = self._clock()
        logger.info("session_resumed", pattern_id=self.pattern.id)

    def cancel(self) -> None:
        """Stop a running or paused session for good."""
        if self.state.status not in (Status.RUNNING, Status.PAUSED):
            raise InvalidTransitionError(
                f"Cannot cancel a session that is {self.state.status.value}"
            )
        self.state.status = Status.CANCELLED
        logger.info(
            "session_cancelled",
            pattern_id=self.pattern.id,
            cycle_index=self.state.cycle_index,
            phase=self.state.phase.value,
        )

    # MARK: - Queries

    def progress(self) -> Progress:
        """Derived position of the session; safe in any status."""
        state = self.state

        if state.status == Status.COMPLETED:
            return Progress(
                phase=Phase.COMPLETE,
                status=state.status,
                cycle_index=state.cycle_index,
                fraction_of_phase_elapsed=1.0,
                fraction_of_cycle_elapsed=1.0,
                fraction_of_session_elapsed=1.0,
                remaining_in_phase_ms=0.0,
            )

        duration = self.pattern.duration_of(state.phase)
        return Progress(
            phase=state.phase,
            status=state.status,
            cycle_index=state.cycle_index,
            fraction_of_phase_elapsed=state.elapsed_in_phase_ms / duration,
            fraction_of_cycle_elapsed=self._elapsed_in_cycle() / self.pattern.cycle_ms,
            fraction_of_session_elapsed=self.elapsed_ms / self.pattern.total_ms,
            remaining_in_phase_ms=duration - state.elapsed_in_phase_ms,
        )

    def summary(self, completed_at: datetime) -> SessionSummary:
        """
        Summarize a finished session for persistence.

        Raises:
            InvalidTransitionError: If the session is still running or paused.
        """
        if not self.is_finished:
            raise InvalidTransitionError(
                f"Session is {self.state.status.value}, no summary yet"
            )
        return SessionSummary(
            pattern_id=self.pattern.id,
            pattern_name=self.pattern.name,
            cycles_completed=self.state.cycle_index,
            duration_ms=round(self.elapsed_ms),
            completed_at=completed_at,
            status=self.state.status,
        )

    # MARK: - Private Helpers

    def _elapsed_in_cycle(self) -> float:
        before = sum(
            self.pattern.duration_of(phase) for phase in self._phases[: self._position]
        )
        return before + self.state.elapsed_in_phase_ms

    def _advance(self) -> None:
        """Move to the next non-zero phase, the next cycle, or completion."""
        self._position += 1

        if self._position == len(self._phases):
            self._position = 0
            self.state.cycle_index += 1

            if self.state.cycle_index == self.pattern.cycles:
                # Time left over after the final phase is not carried anywhere.
                self.state.phase = Phase.COMPLETE
                self.state.status = Status.COMPLETED
                self.state.elapsed_in_phase_ms = 0.0
                self._notify(Phase.COMPLETE)
                logger.info(
                    "session_completed",
                    pattern_id=self.pattern.id,
                    cycles=self.pattern.cycles,
                )
                return

        self.state.phase = self._phases[self._position]
        self._notify(self.state.phase)

    def _notify(self, phase: Phase) -> None:
        if self._on_phase_change is not None:
            self._on_phase_change(phase, self.state.cycle_index)

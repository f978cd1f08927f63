"""
Engine facade used by the UI layer.

Bundles a catalog with at most one active breathing session and hands the
summary of every finished session to a sink.
"""

from collections.abc import Callable, Sequence
from datetime import datetime, timezone

import structlog

from .catalog import Catalog, default_catalog
from .dyads import detect
from .errors import InvalidTransitionError, SessionActiveError
from .models import (
    BreathPattern,
    DetectedDyad,
    Phase,
    Progress,
    Recommendation,
    SelectedEmotion,
    Status,
)
from .recommender import recommend
from .session import BreathingSession, Clock, PhaseListener, monotonic_ms
from .store import SummarySink

logger = structlog.get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


IDLE_PROGRESS = Progress(
    phase=Phase.IDLE,
    status=Status.IDLE,
    cycle_index=0,
    fraction_of_phase_elapsed=0.0,
    fraction_of_cycle_elapsed=0.0,
    fraction_of_session_elapsed=0.0,
)


class BreathingEngine:
    """
    Emotion analysis and guided breathing for a single user.

    Only one session may be active per engine. When it completes or is
    cancelled, its summary is recorded in the sink and the session is released.
    """

    def __init__(
        self,
        catalog: Catalog | None = None,
        sink: SummarySink | None = None,
        clock: Clock = monotonic_ms,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self.catalog = catalog or default_catalog()
        self.sink = sink
        self._clock = clock
        self._now = now
        self._session: BreathingSession | None = None
        self._last_progress = IDLE_PROGRESS

    @property
    def session(self) -> BreathingSession | None:
        return self._session

    # MARK: - Check-in

    def detect(self, selections: Sequence[SelectedEmotion]) -> list[DetectedDyad]:
        return detect(selections, self.catalog.rules)

    def recommend(
        self,
        selections: Sequence[SelectedEmotion],
        detected_dyads: Sequence[DetectedDyad] = (),
    ) -> Recommendation:
        return recommend(selections, detected_dyads, self.catalog)

    def check_in(self, selections: Sequence[SelectedEmotion]) -> Recommendation:
        """Detect dyads and recommend a pattern in one call."""
        return self.recommend(selections, self.detect(selections))

    # MARK: - Session

    def start(
        self,
        pattern: BreathPattern | str,
        on_phase_change: PhaseListener | None = None,
    ) -> Progress:
        """
        Start a session on a pattern or pattern id.

        Raises:
            SessionActiveError: If a session is already running or paused.
            UnknownPatternError: If a pattern id is not in the catalog.
            InvalidPatternError: If the pattern cannot drive a timed session.
        """
        if self._session is not None:
            raise SessionActiveError(
                f"Session on '{self._session.pattern.id}' is "
                f"{self._session.status.value}"
            )
        if isinstance(pattern, str):
            pattern = self.catalog.pattern(pattern)

        self._session = BreathingSession.start(
            pattern, clock=self._clock, on_phase_change=on_phase_change
        )
        return self._session.progress()

    def tick(self, delta_ms: float | None = None) -> Progress:
        """Advance the active session; a no-op without one."""
        if self._session is None:
            return self._last_progress

        self._session.tick(delta_ms)
        return self._settle()

    def pause(self) -> Progress:
        session = self._require_session("pause")
        # Count time up to the pause before freezing the session
        session.tick()
        if session.is_finished:
            return self._settle()
        session.pause()
        return session.progress()

    def resume(self) -> Progress:
        session = self._require_session("resume")
        session.resume()
        return session.progress()

    def cancel(self) -> Progress:
        session = self._require_session("cancel")
        session.tick()
        if not session.is_finished:
            session.cancel()
        return self._settle()

    def progress(self) -> Progress:
        """Progress of the active session, or of the last one to finish."""
        if self._session is None:
            return self._last_progress
        return self._session.progress()

    # MARK: - Private Helpers

    def _require_session(self, action: str) -> BreathingSession:
        if self._session is None:
            raise InvalidTransitionError(f"Cannot {action}: no active session")
        return self._session

    def _settle(self) -> Progress:
        """Record and release the session once it reaches a terminal status."""
        session = self._session
        progress = session.progress()

        if session.is_finished:
            summary = session.summary(completed_at=self._now())
            self._session = None
            self._last_progress = progress
            logger.info(
                "session_recorded",
                pattern_id=summary.pattern_id,
                status=summary.status.value,
                cycles_completed=summary.cycles_completed,
                duration_ms=summary.duration_ms,
            )
            if self.sink is not None:
                self.sink.record(summary)

        return progress

"""
Session summary storage for the EmotiBreath service.

The engine hands every finished session to a :class:`SummarySink`. Durable
persistence lives outside this package; this module provides an in-memory sink
that also streams new summaries to any number of subscribers.
"""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Protocol

from .models import SessionSummary

DEFAULT_MAX_SUMMARIES = 1000


class SummarySink(Protocol):
    """Receives the summary of each completed or cancelled session."""

    def record(self, summary: SessionSummary) -> None: ...


class SummaryStore:
    """
    In-memory summary storage with real-time streaming capabilities.

    Recording is synchronous so the engine can call it from inside a state
    transition. Subscribers are woken through an event that is replaced on
    every record, so each waiter sees every update exactly once. Only the most
    recent ``max_summaries`` summaries are kept.
    """

    def __init__(self, max_summaries: int = DEFAULT_MAX_SUMMARIES) -> None:
        if max_summaries < 1:
            raise ValueError(
                f"max_summaries must be at least 1, got {max_summaries}"
            )
        self._max_summaries = max_summaries
        self._summaries: list[SessionSummary] = []
        self._recorded = 0  # Total ever recorded, including evicted summaries
        self._updated = asyncio.Event()

    def record(self, summary: SessionSummary) -> None:
        """
        Store a summary and notify all subscribers.

        Args:
            summary: The finished session's summary
        """
        self._summaries.append(summary)
        self._recorded += 1
        if len(self._summaries) > self._max_summaries:
            del self._summaries[: len(self._summaries) - self._max_summaries]

        updated, self._updated = self._updated, asyncio.Event()
        updated.set()

    def read(self) -> list[SessionSummary]:
        """
        Get the retained summaries.

        Returns:
            Summaries in the order they were recorded, oldest first
        """
        return list(self._summaries)

    @asynccontextmanager
    async def stream(
        self,
    ) -> AsyncGenerator[AsyncGenerator[SessionSummary, None], None]:
        """
        Stream summaries recorded after subscribing.

        The subscription starts when the context is entered, so nothing recorded
        between entering and the first iteration is missed.

        Yields:
            An async generator of SessionSummary objects
        """
        seen = self._recorded

        async def summary_generator() -> AsyncGenerator[SessionSummary, None]:
            nonlocal seen

            try:
                while True:
                    if seen == self._recorded:
                        await self._updated.wait()

                    while seen < self._recorded:
                        # Summaries evicted before delivery are skipped
                        first_kept = self._recorded - len(self._summaries)
                        seen = max(seen, first_kept)
                        summary = self._summaries[seen - first_kept]
                        seen += 1
                        yield summary

            except (asyncio.CancelledError, GeneratorExit):
                # Subscriber went away
                return

        yield summary_generator()

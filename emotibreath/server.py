"""
FastAPI server for the EmotiBreath service.

This module exposes the engine over HTTP: emotion check-ins, a single guided
breathing session driven by the server clock, and a Server-Sent Events stream
of finished session summaries.
"""

import asyncio
import json
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field

from . import __version__
from .catalog import default_catalog
from .config import get_settings
from .engine import BreathingEngine
from .errors import InvalidPatternError, InvalidTransitionError, UnknownPatternError
from .log import configure_logging
from .models import (
    BaseEmotion,
    BreathPattern,
    DetectedDyad,
    Progress,
    Recommendation,
    SelectedEmotion,
    SessionSummary,
)
from .store import SummaryStore

logger = structlog.get_logger(__name__)


# API Request/Response Schemas
class CheckInRequest(BaseModel):
    """Payload for emotion check-ins."""

    selections: list[SelectedEmotion] = Field(
        ..., description="Selected emotions, in the order they were picked"
    )


class CheckInResponse(BaseModel):
    """Detected dyads and the recommended pattern for a check-in."""

    dyads: list[DetectedDyad]
    recommendation: Recommendation


class StartSessionRequest(BaseModel):
    """Payload for starting a breathing session."""

    pattern_id: str = Field(..., description="Id of the pattern to breathe")


class ProgressResponse(BaseModel):
    """Response model for session endpoints."""

    progress: Progress


def create_app(engine: BreathingEngine, summary_store: SummaryStore) -> FastAPI:
    """
    Create a FastAPI application around the given engine.

    Args:
        engine: The engine whose session this app drives
        summary_store: The store the engine records finished sessions in

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Lifespan context manager for FastAPI application."""
        logger.info("emotibreath_starting", patterns=len(engine.catalog.patterns))
        yield
        logger.info("emotibreath_stopping")

    app = FastAPI(
        title="EmotiBreath",
        description="Emotion check-ins and guided breathing sessions",
        version=__version__,
        lifespan=lifespan,
    )

    @app.exception_handler(UnknownPatternError)
    async def unknown_pattern(request: Request, exc: UnknownPatternError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(InvalidPatternError)
    async def invalid_pattern(request: Request, exc: InvalidPatternError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(InvalidTransitionError)
    async def invalid_transition(
        request: Request, exc: InvalidTransitionError
    ) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.get("/")
    async def root() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "emotibreath"}

    @app.get("/emotions")
    async def list_emotions() -> list[BaseEmotion]:
        """List the base emotions users can select."""
        return list(engine.catalog.emotions)

    @app.get("/patterns")
    async def list_patterns() -> list[BreathPattern]:
        """List the available breathing patterns."""
        return list(engine.catalog.patterns)

    @app.post("/check-in")
    async def check_in(payload: CheckInRequest) -> CheckInResponse:
        """
        Detect dyads and recommend a breathing pattern.

        Args:
            payload: The user's emotion selections

        Returns:
            Detected dyads, strongest first, and the recommendation
        """
        dyads = engine.detect(payload.selections)
        recommendation = engine.recommend(payload.selections, dyads)
        return CheckInResponse(dyads=dyads, recommendation=recommendation)

    @app.post("/session")
    async def start_session(payload: StartSessionRequest) -> ProgressResponse:
        """Start a breathing session on the requested pattern."""
        return ProgressResponse(progress=engine.start(payload.pattern_id))

    @app.get("/session")
    async def session_progress() -> ProgressResponse:
        """
        Get the progress of the current session.

        The session is advanced by the time elapsed since the previous request,
        so polling at any rate keeps it accurate.
        """
        return ProgressResponse(progress=engine.tick())

    @app.post("/session/pause")
    async def pause_session() -> ProgressResponse:
        return ProgressResponse(progress=engine.pause())

    @app.post("/session/resume")
    async def resume_session() -> ProgressResponse:
        return ProgressResponse(progress=engine.resume())

    @app.post("/session/cancel")
    async def cancel_session() -> ProgressResponse:
        return ProgressResponse(progress=engine.cancel())

    @app.get("/sessions")
    async def list_sessions() -> list[SessionSummary]:
        """List the summaries of finished sessions."""
        return summary_store.read()

    @app.get("/sessions/stream")
    async def stream_sessions() -> StreamingResponse:
        """
        Stream finished session summaries via Server-Sent Events.

        Returns:
            StreamingResponse with text/event-stream content type
        """

        async def event_generator() -> AsyncGenerator[str, None]:
            """Generate SSE events for recorded summaries."""
            try:
                async with summary_store.stream() as summary_stream:
                    # Opening comment frame so clients see the stream start
                    yield ": connected\n\n"
                    async for summary in summary_stream:
                        data = json.dumps(summary.model_dump(mode="json"))
                        yield f"data: {data}\n\n"
            except asyncio.CancelledError:
                # Client disconnected
                pass
            except Exception as e:
                logger.exception("summary_stream_failed")
                error_data = json.dumps({"error": str(e)})
                yield f"event: error\ndata: {error_data}\n\n"

        return StreamingResponse(
            event_generator(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "Access-Control-Allow-Origin": "*",
                "Access-Control-Allow-Headers": "*",
            },
        )

    return app


def build_app() -> FastAPI:
    """Build the application from environment settings."""
    settings = get_settings()
    configure_logging(settings.log_level, json=settings.log_json)

    summary_store = SummaryStore(max_summaries=settings.max_summaries)
    engine = BreathingEngine(
        catalog=default_catalog(settings.default_pattern_id),
        sink=summary_store,
    )
    return create_app(engine, summary_store)


def main() -> None:
    """Main entry point for the server."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "emotibreath.server:build_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()

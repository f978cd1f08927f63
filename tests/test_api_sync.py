"""
End-to-end tests for the EmotiBreath API endpoints.

These tests verify the HTTP API including check-ins, the session lifecycle
driven by the server clock and Server-Sent Events streaming of summaries.
"""

import asyncio
import contextlib
import json
import socket
import threading
import time

import httpx
import uvicorn
from fastapi.testclient import TestClient
from httpx_sse import aconnect_sse

from emotibreath.engine import BreathingEngine
from emotibreath.server import create_app
from emotibreath.store import SummaryStore

from .fakes import FIXED_NOW, FakeClock

# MARK: - Sync


class TestAPISync:
    """Integration tests covering the application flow using synchronous
    HTTP request/response."""

    def setup_method(self):
        """Set up a fresh app with a new engine and store for each test."""
        self.clock = FakeClock()
        self.summary_store = SummaryStore()
        self.engine = BreathingEngine(
            sink=self.summary_store, clock=self.clock, now=lambda: FIXED_NOW
        )
        self.app = create_app(self.engine, self.summary_store)

    def test_catalog_endpoints(self):
        with TestClient(self.app) as client:
            assert client.get("/").json()["status"] == "ok"

            emotions = client.get("/emotions").json()
            assert len(emotions) == 8
            assert emotions[0]["id"] == "joy"

            patterns = {p["id"]: p for p in client.get("/patterns").json()}
            assert patterns["4-7-8"]["hold_in_ms"] == 7000

    def test_check_in(self):
        with TestClient(self.app) as client:
            response = client.post(
                "/check-in",
                json={
                    "selections": [
                        {"emotion_id": "anxious", "intensity": 5},
                        {"emotion_id": "joy", "intensity": 4},
                        {"emotion_id": "trust", "intensity": 3},
                    ]
                },
            )
            assert response.status_code == 200

            result = response.json()
            assert [dyad["result"] for dyad in result["dyads"]] == ["love"]
            assert result["dyads"][0]["strength"] == 7
            assert result["recommendation"]["pattern_id"] == "4-7-8"

    def test_check_in_rejects_bad_intensity(self):
        with TestClient(self.app) as client:
            response = client.post(
                "/check-in",
                json={"selections": [{"emotion_id": "joy", "intensity": 9}]},
            )
            assert response.status_code == 422

    def test_empty_check_in_falls_back(self):
        with TestClient(self.app) as client:
            response = client.post("/check-in", json={"selections": []})
            assert response.status_code == 200
            assert response.json()["recommendation"]["pattern_id"] == "coherent"

    def test_complete_workflow(self):
        """Test start -> progress -> pause -> resume -> complete -> summaries."""
        with TestClient(self.app) as client:
            # 1. Start a session
            response = client.post("/session", json={"pattern_id": "4-7-8"})
            assert response.status_code == 200
            assert response.json()["progress"]["phase"] == "inhale"

            # 2. Progress follows the server clock
            self.clock.advance(5000)
            progress = client.get("/session").json()["progress"]
            assert progress["phase"] == "holdIn"
            assert progress["status"] == "running"

            # 3. Paused time is not counted
            assert client.post("/session/pause").json()["progress"]["status"] == "paused"
            self.clock.advance(600000)
            progress = client.get("/session").json()["progress"]
            assert progress["phase"] == "holdIn"
            assert progress["cycle_index"] == 0

            # 4. A second start is refused while the session is active
            conflict = client.post("/session", json={"pattern_id": "coherent"})
            assert conflict.status_code == 409

            # 5. Resume and let the rest of the session elapse
            assert client.post("/session/resume").json()["progress"]["status"] == "running"
            self.clock.advance(71000)
            progress = client.get("/session").json()["progress"]
            assert progress["status"] == "completed"
            assert progress["phase"] == "complete"
            assert progress["cycle_index"] == 4

            # 6. The finished session was handed to the store
            summaries = client.get("/sessions").json()
            assert len(summaries) == 1
            assert summaries[0]["pattern_id"] == "4-7-8"
            assert summaries[0]["duration_ms"] == 76000
            assert summaries[0]["status"] == "completed"

            # 7. Verify the stream endpoint exists and responds correctly
            with client.stream("GET", "/sessions/stream") as response:
                assert response.status_code == 200
                assert response.headers["content-type"].startswith("text/event-stream")

    def test_stream_opens_before_any_summary(self):
        """Test the stream starts sending as soon as a client subscribes."""
        first_lines: list[str] = []

        def open_stream() -> None:
            with TestClient(self.app) as client:
                with client.stream("GET", "/sessions/stream") as response:
                    assert response.status_code == 200
                    first_lines.append(next(response.iter_lines()))

        thread = threading.Thread(target=open_stream, daemon=True)
        thread.start()
        thread.join(timeout=5.0)

        assert not thread.is_alive(), "Stream sent nothing before the first summary"
        assert first_lines == [": connected"]

    def test_error_statuses(self):
        with TestClient(self.app) as client:
            assert client.post("/session", json={"pattern_id": "nope"}).status_code == 404
            assert (
                client.post("/session", json={"pattern_id": "meditate"}).status_code
                == 422
            )
            assert client.post("/session/pause").status_code == 409
            assert client.post("/session/cancel").status_code == 409

            client.post("/session", json={"pattern_id": "coherent"})
            assert client.post("/session/resume").status_code == 409


# MARK: - Streaming


class TestAPIStream:
    """Integration tests covering summary streaming over SSE."""

    def setup_method(self):
        """Set up a fresh app with a new engine and store for each test."""
        self.summary_store = SummaryStore()
        self.engine = BreathingEngine(sink=self.summary_store, clock=FakeClock())
        self.app = create_app(self.engine, self.summary_store)

    async def test_streaming_api(self):
        """Test streaming API with a consumer that collects finished sessions."""

        # Start a real HTTP server in a background thread on a free port
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.bind(("127.0.0.1", 0))
        host, port = sock.getsockname()
        sock.close()
        base_url = f"http://{host}:{port}"

        config = uvicorn.Config(
            app=self.app,
            host=host,
            port=port,
            loop="asyncio",
            lifespan="on",
            log_level="warning",
            ws="none",
        )
        server = uvicorn.Server(config)

        def run_server() -> None:
            asyncio.run(server.serve())

        thread = threading.Thread(target=run_server, daemon=True)
        thread.start()

        # Wait for server to be ready
        start = time.time()
        while time.time() - start < 5.0:
            try:
                r = httpx.get(base_url + "/", timeout=0.2)
                if r.status_code == 200:
                    break
            except httpx.HTTPError:
                pass
            time.sleep(0.05)
        else:
            server.should_exit = True
            thread.join(timeout=1.0)
            assert False, "Server did not start in time"

        async with httpx.AsyncClient(
            base_url=base_url, timeout=httpx.Timeout(5.0, read=None)
        ) as client:
            received: list[str] = []

            async def consume() -> None:
                async with aconnect_sse(client, "GET", "/sessions/stream") as es:
                    assert es.response.status_code == 200

                    async for sse in es.aiter_sse():
                        if sse.event == "error":
                            assert False, f"SSE error event: {json.loads(sse.data)}"

                        payload = json.loads(sse.data)
                        received.append(payload["pattern_id"])
                        if len(received) >= 2:
                            break

            consumer_task = asyncio.create_task(consume())

            # Give the consumer time to subscribe
            await asyncio.sleep(0.2)

            # Run and cancel two sessions through the HTTP API
            for pattern_id in ("4-7-8", "box-breathing"):
                resp = await client.post("/session", json={"pattern_id": pattern_id})
                assert resp.status_code == 200
                resp = await client.post("/session/cancel")
                assert resp.status_code == 200

            try:
                await asyncio.wait_for(consumer_task, timeout=3.0)
            except TimeoutError:
                consumer_task.cancel()
                with contextlib.suppress(Exception):
                    await consumer_task
                server.should_exit = True
                thread.join(timeout=1.0)
                assert False, f"Streaming test timed out. Received: {received}"

            assert received == ["4-7-8", "box-breathing"]

        # Shutdown server
        server.should_exit = True
        thread.join(timeout=2.0)

import json
import os
import socket
import threading
import time

import httpx
import pytest

pytestmark = pytest.mark.integration


def _free_port():
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def test_list_stream_over_real_server():
    """Runs uvicorn in a thread and follows /api/match/stream over HTTP.

    Opt-in with RUN_INTEGRATION=1 since it binds a local port.
    """
    if not os.getenv("RUN_INTEGRATION"):
        pytest.skip("Integration tests disabled; set RUN_INTEGRATION=1 to enable")

    import uvicorn

    from matchcast.config import Settings
    from matchcast.fastapi_app import create_app

    port = _free_port()
    app = create_app(Settings(ping_interval=0.5))
    server = uvicorn.Server(uvicorn.Config(app, host="127.0.0.1", port=port, log_level="warning"))
    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()
    base = f"http://127.0.0.1:{port}"
    try:
        for _ in range(50):
            if server.started:
                break
            time.sleep(0.1)

        with httpx.Client(base_url=base, timeout=httpx.Timeout(5.0, read=5.0)) as client:
            with client.stream("GET", "/api/match/stream") as resp:
                assert resp.headers["content-type"].startswith("text/event-stream")
                lines = resp.iter_lines()
                first = json.loads(next(l for l in lines if l.startswith("data:"))[5:])
                assert first["type"] == "INITIAL_DATA"

                res = httpx.post(f"{base}/api/match/add", json={
                    "teamA": "A", "teamB": "B", "location": "Estadio", "competition": "Liga",
                    "date": "2026-05-01T18:00:00Z",
                })
                assert res.status_code == 200

                pushed = json.loads(next(l for l in lines if l.startswith("data:"))[5:])
                assert pushed["type"] == "MATCH_ADDED"
                assert pushed["match"]["teamA"] == "A"
    finally:
        server.should_exit = True
        thread.join(timeout=5)

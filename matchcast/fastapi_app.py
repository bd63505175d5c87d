"""FastAPI application: match mutation routes, reads and live SSE streams.

Run with: `uvicorn matchcast.fastapi_app:app --port 5000`
(or `python scripts/run_server.py`, which reads HOST/PORT from the env).

Mutation routes answer `{"ok": true, "data": <match>}`; errors answer
`{"ok": false, "error": "..."}` with a matching status code. The two
`/stream` routes hold the response open and push one JSON event per change.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from matchcast import events
from matchcast.broadcast import Broadcaster
from matchcast.config import Settings, configure_logging
from matchcast.db import init_db, make_engine, make_session_factory
from matchcast.domain import EventKind, MatchStatus, Team
from matchcast.errors import MatchcastError
from matchcast.registry import SubscriptionRegistry
from matchcast.service import MatchService
from matchcast.store import MatchStore
from matchcast.streams import StreamSession

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


# ---------------- request bodies ----------------

class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class MatchIn(_Body):
    team_a: str = Field(alias="teamA", min_length=1)
    team_b: str = Field(alias="teamB", min_length=1)
    location: str = Field(min_length=1)
    competition: str = Field(min_length=1)
    date: datetime


class StatusChangeIn(_Body):
    match_id: str = Field(alias="matchId", min_length=1)
    new_status: MatchStatus = Field(alias="newStatus")


class StartIn(_Body):
    match_id: str = Field(alias="matchId", min_length=1)


class EventIn(_Body):
    match_id: str = Field(alias="matchId", min_length=1)
    event_type: EventKind = Field(alias="eventType")
    team: Team
    player: str = Field(min_length=1)
    minute: int = Field(ge=0)


class ScoreIn(_Body):
    match_id: str = Field(alias="matchId", min_length=1)
    score_a: int = Field(alias="scoreA", ge=0)
    score_b: int = Field(alias="scoreB", ge=0)


# ---------------- plumbing ----------------

class EventStreamResponse(StreamingResponse):
    """SSE response that closes its session however the response ends.

    The generator's own `finally` does not run when the client disconnects
    before the first frame is pulled, so the response guards it too.
    """

    def __init__(self, session: StreamSession) -> None:
        super().__init__(session.frames(), media_type="text/event-stream", headers=SSE_HEADERS)
        self.session = session

    async def __call__(self, scope, receive, send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            self.session.close()


def get_service(request: Request) -> MatchService:
    return request.app.state.service


def _ok(data: Any) -> Dict[str, Any]:
    return {"ok": True, "data": data}


def _open_session(request: Request, topic: str, snapshot: Optional[Dict[str, Any]]) -> EventStreamResponse:
    state = request.app.state
    session = StreamSession(
        state.registry,
        topic,
        ping_interval=state.settings.ping_interval,
        queue_size=state.settings.queue_size,
        is_disconnected=request.is_disconnected,
    )
    session.open(snapshot)
    return EventStreamResponse(session)


async def handle_matchcast_error(request: Request, exc: MatchcastError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"ok": False, "error": exc.message})


# ---------------- routes ----------------

async def root() -> Dict[str, str]:
    return {"message": "Football Tracker Server is Running"}


async def list_matches(sort: str = Query("asc"), service: MatchService = Depends(get_service)):
    return _ok(service.list_matches(sort))


async def get_match(match_id: str, service: MatchService = Depends(get_service)):
    return _ok(service.get_match(match_id))


async def add_match(body: MatchIn, service: MatchService = Depends(get_service)):
    match = service.create_match({
        "team_a": body.team_a,
        "team_b": body.team_b,
        "location": body.location,
        "competition": body.competition,
        "scheduled_at": body.date,
    })
    return _ok(match)


async def change_status(body: StatusChangeIn, service: MatchService = Depends(get_service)):
    return _ok(service.change_status(body.match_id, body.new_status))


async def start_match(body: StartIn, service: MatchService = Depends(get_service)):
    return _ok(service.start_match(body.match_id))


async def add_match_event(body: EventIn, service: MatchService = Depends(get_service)):
    event, match = service.add_event(body.match_id, body.event_type, body.team, body.player, body.minute)
    return {"ok": True, "event": event, "data": match}


async def update_score(body: ScoreIn, service: MatchService = Depends(get_service)):
    return _ok(service.update_score(body.match_id, body.score_a, body.score_b))


async def stream_matches(request: Request, service: MatchService = Depends(get_service)):
    """SSE feed of the match list: INITIAL_DATA, then list-level changes."""
    return _open_session(request, events.ALL_MATCHES, service.list_snapshot())


async def stream_match(match_id: str, request: Request, service: MatchService = Depends(get_service)):
    """SSE feed of one match: INITIAL_MATCH_DATA (if it exists), then its changes."""
    return _open_session(request, match_id, service.match_snapshot(match_id))


def build_router() -> APIRouter:
    router = APIRouter(prefix="/api/match")
    router.post("/add")(add_match)
    router.post("/change-status")(change_status)
    router.post("/start")(start_match)
    router.post("/add-event")(add_match_event)
    router.post("/update-score")(update_score)
    # stream routes go first so "/stream" is not taken for a match id
    router.get("/stream")(stream_matches)
    router.get("/stream/{match_id}")(stream_match)
    router.get("")(list_matches)
    router.get("/{match_id}")(get_match)
    return router


@asynccontextmanager
async def _lifespan(app: FastAPI):
    configure_logging(app.state.settings.log_level)
    logger.info("match tracker ready")
    yield
    closed = app.state.registry.close_all()
    logger.info("shutdown: closed %d live streams", closed)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the app and its single registry/dispatcher/store instances."""
    settings = settings or Settings.from_env()

    engine = make_engine(settings.database_url)
    init_db(engine)
    store = MatchStore(make_session_factory(engine))
    registry = SubscriptionRegistry()
    broadcaster = Broadcaster(registry)

    app = FastAPI(title="Football Live Tracker", lifespan=_lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.registry = registry
    app.state.broadcaster = broadcaster
    app.state.service = MatchService(store, broadcaster)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(MatchcastError, handle_matchcast_error)
    app.get("/")(root)
    app.include_router(build_router())
    return app


app = create_app()

"""Persistence collaborator: query and mutate matches, return plain dicts.

Every method opens its own short session and returns the stored
representation (`Match.to_dict()`), never ORM instances, so callers can
publish the result without touching the database again.

Calls are synchronous and are made inline from the async routes, so each
round-trip blocks the event loop and every open stream with it. Keep the
database close (a local Postgres or SQLite file) or move to an async driver.
"""
from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from matchcast.db import Match, MatchEvent
from matchcast.domain import EventKind, MatchStatus, Team, score_delta
from matchcast.errors import DuplicateMatch, PersistenceError

logger = logging.getLogger(__name__)

# Columns that update_by_id accepts in a patch.
PATCHABLE = frozenset({"status", "elapsed", "score_a", "score_b"})

# How a violation of uq_matches_fixture reads on Postgres and on SQLite.
_FIXTURE_CLASH = ("uq_matches_fixture", "matches.team_a, matches.team_b, matches.scheduled_at")


def as_naive_utc(value: datetime) -> datetime:
    """Normalize aware datetimes to naive UTC so equality lookups match."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class MatchStore:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        try:
            with self._session_factory() as session:
                yield session
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            logger.exception("match store %s failed", operation)
            raise PersistenceError(f"Could not {operation} match") from exc

    def find_by_id(self, match_id: str) -> Optional[Dict[str, Any]]:
        with self._session("load") as session:
            row = session.get(Match, match_id)
            return row.to_dict() if row is not None else None

    def find_by_teams_and_date(self, team_a: str, team_b: str, date: datetime) -> Optional[Dict[str, Any]]:
        """Return the match with exactly these teams (in this order) and date."""
        stmt = select(Match).where(
            Match.team_a == team_a,
            Match.team_b == team_b,
            Match.scheduled_at == as_naive_utc(date),
        )
        with self._session("load") as session:
            row = session.scalars(stmt).first()
            return row.to_dict() if row is not None else None

    def insert(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Persist a new match and return it.

        `data` holds team_a, team_b, location, competition and scheduled_at;
        status, elapsed and scores fall back to their column defaults.
        Raises DuplicateMatch when the fixture already exists; any other
        integrity failure is a PersistenceError.
        """
        inst = Match(
            id=uuid.uuid4().hex,
            team_a=data["team_a"],
            team_b=data["team_b"],
            location=data["location"],
            competition=data["competition"],
            scheduled_at=as_naive_utc(data["scheduled_at"]),
            status=MatchStatus(data.get("status", MatchStatus.SCHEDULED)).value,
            elapsed=data.get("elapsed", 0),
            score_a=data.get("score_a", 0),
            score_b=data.get("score_b", 0),
        )
        try:
            with self._session("insert") as session:
                session.add(inst)
                session.commit()
                session.refresh(inst)
                return inst.to_dict()
        except IntegrityError as exc:
            if any(marker in str(exc.orig) for marker in _FIXTURE_CLASH):
                raise DuplicateMatch("Identical match is already stored") from exc
            logger.exception("match store insert failed")
            raise PersistenceError("Could not insert match") from exc

    def update_by_id(self, match_id: str, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply `patch` to one match; None when the id is unknown."""
        unknown = set(patch) - PATCHABLE
        if unknown:
            raise ValueError(f"cannot patch columns: {sorted(unknown)}")
        with self._session("update") as session:
            row = session.get(Match, match_id, with_for_update=True)
            if row is None:
                return None
            for column, value in patch.items():
                if column == "status":
                    value = MatchStatus(value).value
                setattr(row, column, value)
            session.commit()
            session.refresh(row)
            return row.to_dict()

    def list_all(self, sort: str = "asc") -> List[Dict[str, Any]]:
        """All matches ordered by scheduled date (`asc` or `desc`)."""
        order = Match.scheduled_at.desc() if sort == "desc" else Match.scheduled_at.asc()
        with self._session("list") as session:
            rows = session.scalars(select(Match).order_by(order, Match.created_at)).all()
            return [r.to_dict() for r in rows]

    def add_event(self, match_id: str, event: Dict[str, Any]) -> Optional[Tuple[Dict[str, Any], Dict[str, Any]]]:
        """Append an event and apply its score change in one transaction.

        Returns `(event, match)` as dicts, or None when the id is unknown.
        """
        kind = EventKind(event["kind"])
        team = Team(event["team"])
        with self._session("record event for") as session:
            row = session.get(Match, match_id, with_for_update=True)
            if row is None:
                return None
            record = MatchEvent(
                kind=kind.value,
                team=team.value,
                player=event["player"],
                minute=event["minute"],
            )
            row.events.append(record)
            for column, inc in score_delta(kind, team).items():
                setattr(row, column, getattr(row, column) + inc)
            session.commit()
            session.refresh(row)
            return record.to_dict(), row.to_dict()

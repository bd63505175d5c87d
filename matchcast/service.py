"""Match mutations and reads, with live notification of every change.

Each mutation validates, writes through the store and only then publishes.
A failed write publishes nothing. Publishing never fails the mutation.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from matchcast import events
from matchcast.broadcast import Broadcaster
from matchcast.domain import EventKind, MatchStatus, Team, can_transition
from matchcast.errors import DuplicateMatch, InvalidTransition, MatchNotFound, ValidationFailed
from matchcast.store import MatchStore

logger = logging.getLogger(__name__)

_REQUIRED_ON_CREATE = ("team_a", "team_b", "location", "competition", "scheduled_at")


def _clean(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


class MatchService:
    def __init__(self, store: MatchStore, broadcaster: Broadcaster) -> None:
        self.store = store
        self.broadcaster = broadcaster

    # -- reads ---------------------------------------------------------------

    def list_matches(self, sort: str = "asc") -> List[Dict[str, Any]]:
        if sort not in ("asc", "desc"):
            raise ValidationFailed("sort must be 'asc' or 'desc'")
        return self.store.list_all(sort)

    def get_match(self, match_id: str) -> Dict[str, Any]:
        match = self.store.find_by_id(match_id)
        if match is None:
            raise MatchNotFound(match_id)
        return match

    def list_snapshot(self) -> Dict[str, Any]:
        return events.initial_data(self.store.list_all())

    def match_snapshot(self, match_id: str) -> Optional[Dict[str, Any]]:
        """INITIAL_MATCH_DATA for `match_id`, or None if there is no such match."""
        match = self.store.find_by_id(match_id)
        return events.initial_match_data(match) if match is not None else None

    # -- mutations -----------------------------------------------------------

    def create_match(self, data: Dict[str, Any]) -> Dict[str, Any]:
        data = {k: _clean(v) for k, v in data.items()}
        missing = [k for k in _REQUIRED_ON_CREATE if data.get(k) in (None, "")]
        if missing:
            raise ValidationFailed(f"missing match fields: {', '.join(missing)}")
        if not isinstance(data["scheduled_at"], datetime):
            raise ValidationFailed("scheduled_at must be a datetime")

        if self.store.find_by_teams_and_date(data["team_a"], data["team_b"], data["scheduled_at"]):
            raise DuplicateMatch("Identical match is already stored")
        match = self.store.insert(data)
        logger.info("match %s added: %s vs %s", match["id"], match["teamA"], match["teamB"])

        # nobody can be watching a match that did not exist, so only the list hears about it
        self.broadcaster.publish_to_topic(events.ALL_MATCHES, events.match_added(match))
        return match

    def change_status(self, match_id: str, new_status: MatchStatus) -> Dict[str, Any]:
        new_status = self._status(new_status)
        current = self.get_match(match_id)
        if not can_transition(current["status"], new_status):
            raise InvalidTransition(f"cannot move match from {current['status']} to {new_status.value}")

        match = self._update(match_id, {"status": new_status.value})
        logger.info("match %s status %s -> %s", match_id, current["status"], match["status"])
        self.broadcaster.publish_match_change(events.match_status_changed(match), match)
        return match

    def start_match(self, match_id: str) -> Dict[str, Any]:
        current = self.get_match(match_id)
        if current["status"] != MatchStatus.SCHEDULED.value:
            raise InvalidTransition(f"cannot start a match that is {current['status']}")

        match = self._update(match_id, {"status": MatchStatus.LIVE.value, "elapsed": 0})
        logger.info("match %s started", match_id)
        self.broadcaster.publish_match_change(events.match_started(match), match)
        return match

    def add_event(
        self, match_id: str, kind: EventKind, team: Team, player: str, minute: int
    ) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        try:
            kind, team = EventKind(kind), Team(team)
        except ValueError as exc:
            raise ValidationFailed(str(exc)) from exc
        player = _clean(player)
        if not player or minute is None or minute < 0:
            raise ValidationFailed("event needs a player and a non-negative minute")

        result = self.store.add_event(
            match_id, {"kind": kind, "team": team, "player": player, "minute": minute}
        )
        if result is None:
            raise MatchNotFound(match_id)
        event, match = result
        logger.info("match %s: %s for %s (%s, %d')", match_id, kind.value, team.value, player, minute)
        self.broadcaster.publish_match_change(events.match_event(event, match), match)
        return event, match

    def update_score(self, match_id: str, score_a: int, score_b: int) -> Dict[str, Any]:
        """Overwrite both scores. The event history is not consulted."""
        if score_a is None or score_b is None or score_a < 0 or score_b < 0:
            raise ValidationFailed("scores must be non-negative integers")

        match = self._update(match_id, {"score_a": score_a, "score_b": score_b})
        logger.info("match %s score set to %d-%d", match_id, score_a, score_b)
        self.broadcaster.publish_match_change(events.match_updated(match), match)
        return match

    # -- helpers -------------------------------------------------------------

    @staticmethod
    def _status(value: Any) -> MatchStatus:
        try:
            return MatchStatus(value)
        except ValueError as exc:
            raise ValidationFailed(str(exc)) from exc

    def _update(self, match_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        match = self.store.update_by_id(match_id, patch)
        if match is None:
            raise MatchNotFound(match_id)
        return match

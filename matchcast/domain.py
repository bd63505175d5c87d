"""Match vocabulary: statuses, event kinds, teams and the rules that tie them."""
from __future__ import annotations

from enum import Enum
from typing import Dict


class MatchStatus(str, Enum):
    SCHEDULED = "scheduled"
    LIVE = "live"
    FINISHED = "finished"


class EventKind(str, Enum):
    GOAL = "goal"
    YELLOW_CARD = "yellow_card"
    RED_CARD = "red_card"
    FOUL = "foul"


class Team(str, Enum):
    TEAM_A = "teamA"
    TEAM_B = "teamB"


# Position in the lifecycle; a match may only move to a higher rank.
_STATUS_RANK = {
    MatchStatus.SCHEDULED: 0,
    MatchStatus.LIVE: 1,
    MatchStatus.FINISHED: 2,
}


def can_transition(current: MatchStatus, new: MatchStatus) -> bool:
    """Return True if `current -> new` moves the match strictly forward."""
    return _STATUS_RANK[MatchStatus(new)] > _STATUS_RANK[MatchStatus(current)]


def score_delta(kind: EventKind, team: Team) -> Dict[str, int]:
    """Score columns to bump for an event, e.g. {"score_a": 1} for a teamA goal.

    Only goals change the score.
    """
    if EventKind(kind) is not EventKind.GOAL:
        return {}
    column = "score_a" if Team(team) is Team.TEAM_A else "score_b"
    return {column: 1}

"""Live event payloads and their Server-Sent Events framing.

Every message on a stream is one JSON object with a `type` key, sent as a
single `data:` line followed by a blank line.
"""
from __future__ import annotations

import json
from enum import Enum
from typing import Any, Dict, List

from fastapi.encoders import jsonable_encoder

# Topic every list-view subscriber listens on; match topics are match ids.
ALL_MATCHES = "all_matches"


class EventType(str, Enum):
    INITIAL_DATA = "INITIAL_DATA"
    INITIAL_MATCH_DATA = "INITIAL_MATCH_DATA"
    MATCH_ADDED = "MATCH_ADDED"
    MATCH_UPDATED = "MATCH_UPDATED"
    MATCH_STATUS_CHANGED = "MATCH_STATUS_CHANGED"
    MATCH_STARTED = "MATCH_STARTED"
    MATCH_EVENT = "MATCH_EVENT"
    PING = "PING"


def initial_data(matches: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"type": EventType.INITIAL_DATA.value, "matches": matches}


def initial_match_data(match: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": EventType.INITIAL_MATCH_DATA.value, "match": match}


def match_added(match: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": EventType.MATCH_ADDED.value, "match": match}


def match_updated(match: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": EventType.MATCH_UPDATED.value, "matchId": match["id"], "match": match}


def match_status_changed(match: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": EventType.MATCH_STATUS_CHANGED.value,
        "matchId": match["id"],
        "newStatus": match["status"],
        "match": match,
    }


def match_started(match: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": EventType.MATCH_STARTED.value, "matchId": match["id"], "match": match}


def match_event(event: Dict[str, Any], match: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": EventType.MATCH_EVENT.value,
        "matchId": match["id"],
        "event": event,
        "match": match,
    }


def ping() -> Dict[str, Any]:
    return {"type": EventType.PING.value}


def encode_event(event: Dict[str, Any]) -> str:
    """Frame one event for the wire: `data: {...}\\n\\n`."""
    return f"data: {json.dumps(jsonable_encoder(event))}\n\n"


def decode_event(frame: str) -> Dict[str, Any]:
    """Inverse of `encode_event` for a single frame (multi-line data joined)."""
    lines = [ln[len("data:"):].lstrip() for ln in frame.splitlines() if ln.startswith("data:")]
    return json.loads("\n".join(lines))

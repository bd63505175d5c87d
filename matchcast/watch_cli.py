"""Terminal viewer for the live match streams.

Subscribes to the list stream (or one match with `--match`) and prints each
received event as one JSON line. Pings are hidden unless `--show-pings`.

Usage:
    python -m matchcast.watch_cli --base-url http://localhost:5000
    python -m matchcast.watch_cli --match 3f2c... --show-pings

"""
from __future__ import annotations

import argparse
import json
from typing import Any, Callable, Dict, Iterable, Iterator, Optional

import httpx

from matchcast.events import EventType

DEFAULT_BASE_URL = "http://localhost:5000"


def stream_url(base_url: str, match_id: Optional[str] = None) -> str:
    base = base_url.rstrip("/") + "/api/match/stream"
    return f"{base}/{match_id}" if match_id else base


def iter_events(lines: Iterable[str]) -> Iterator[Dict[str, Any]]:
    """Group SSE lines into messages and decode each message's data as JSON.

    Comment lines and fields other than `data` are ignored.
    """
    data = []
    for line in lines:
        if line == "":
            if data:
                yield json.loads("\n".join(data))
                data = []
            continue
        if line.startswith("data:"):
            data.append(line[len("data:"):].lstrip())
    if data:
        yield json.loads("\n".join(data))


def watch(
    base_url: str,
    match_id: Optional[str] = None,
    show_pings: bool = False,
    client: Optional[httpx.Client] = None,
    out: Callable[[str], None] = print,
) -> int:
    """Print events until the server ends the stream; return how many were printed."""
    own_client = client is None
    client = client or httpx.Client(timeout=httpx.Timeout(10.0, read=None))
    printed = 0
    try:
        with client.stream("GET", stream_url(base_url, match_id)) as resp:
            resp.raise_for_status()
            for event in iter_events(resp.iter_lines()):
                if event.get("type") == EventType.PING.value and not show_pings:
                    continue
                out(json.dumps(event))
                printed += 1
    finally:
        if own_client:
            client.close()
    return printed


def main(argv: Optional[list] = None) -> int:
    p = argparse.ArgumentParser(description="Watch live football match updates")
    p.add_argument("--base-url", default=DEFAULT_BASE_URL, help="Server base URL")
    p.add_argument("--match", dest="match_id", required=False, help="Only follow this match id")
    p.add_argument("--show-pings", action="store_true", help="Also print keep-alive pings")

    args = p.parse_args(argv)
    try:
        watch(args.base_url, args.match_id, args.show_pings)
    except KeyboardInterrupt:
        return 0
    except httpx.HTTPError as exc:
        print(json.dumps({"ok": False, "error": str(exc)}))
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())  # pragma: no cover

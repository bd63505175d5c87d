"""Errors raised by the match service and rendered by the HTTP layer."""
from __future__ import annotations


class MatchcastError(Exception):
    """Base class; `status_code` is the HTTP status the API answers with."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailed(MatchcastError):
    status_code = 400


class MatchNotFound(MatchcastError):
    status_code = 404

    def __init__(self, match_id: str) -> None:
        super().__init__(f"No match found with id {match_id!r}")
        self.match_id = match_id


class DuplicateMatch(MatchcastError):
    status_code = 409


class InvalidTransition(MatchcastError):
    status_code = 409


class PersistenceError(MatchcastError):
    status_code = 500

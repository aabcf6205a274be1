"""
Domain errors raised by the bracket and voting engine.

Each class is one error kind. `status_code` is the HTTP status the API layer
renders it with, `kind` the machine-readable name, and `extra()` any detail
a client needs to show a precise message.
"""
from typing import Any, Dict, Iterable, Optional


class FaceoffError(Exception):
    """Base class for every error the engine raises on purpose."""
    status_code: int = 500
    kind: str = "error"

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code:
            self.status_code = status_code
        super().__init__(self.message)

    def extra(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.kind, "detail": self.message}
        body.update(self.extra())
        return body


class InvalidInput(FaceoffError):
    """Malformed or missing input, including bad competitor counts for seeding."""
    status_code = 400
    kind = "invalid_input"

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)

    def extra(self) -> Dict[str, Any]:
        return {"field": self.field} if self.field else {}


class NotFound(FaceoffError):
    status_code = 404
    kind = "not_found"

    def __init__(self, entity: str, key: Any = None):
        self.entity = entity
        self.key = key
        message = f"{entity} not found" if key is None else f"{entity} '{key}' not found"
        super().__init__(message)

    def extra(self) -> Dict[str, Any]:
        return {"entity": self.entity}


class ConflictAlreadyVoted(FaceoffError):
    """A ballot already exists for the (matchup, voter, source) triple."""
    status_code = 409
    kind = "already_voted"

    def __init__(self, matchup_ids: Iterable[int] = (), message: str = "You have already voted from this source"):
        self.matchup_ids = sorted(matchup_ids)
        super().__init__(message)

    def extra(self) -> Dict[str, Any]:
        return {"matchup_ids": self.matchup_ids}


class VotingClosed(FaceoffError):
    status_code = 403
    kind = "voting_closed"

    MESSAGES = {
        "campaign_inactive": "This campaign is not currently active",
        "no_active_round": "No round is open for voting",
        "not_open": "Voting for this round has not opened yet",
        "closed": "Voting for this round has already closed",
        "matchup_decided": "This matchup has already been decided",
    }

    def __init__(self, reason: str, message: Optional[str] = None):
        self.reason = reason
        super().__init__(message or self.MESSAGES.get(reason, "Voting is closed"))

    def extra(self) -> Dict[str, Any]:
        return {"reason": self.reason}


class SourceRejected(FaceoffError):
    """The ballot-origin token is unknown, switched off or outside its validity window."""
    status_code = 403
    kind = "source_rejected"

    NOT_FOUND = "not_found"
    INACTIVE = "inactive"
    NOT_YET_VALID = "not_yet_valid"
    EXPIRED = "expired"

    MESSAGES = {
        NOT_FOUND: "Invalid vote source",
        INACTIVE: "This vote source is not currently active",
        NOT_YET_VALID: "This vote source is not yet valid",
        EXPIRED: "This vote source has expired",
    }

    def __init__(self, reason: str, code: str):
        self.reason = reason
        self.code = code
        status_code = 400 if reason == self.NOT_FOUND else None
        super().__init__(self.MESSAGES[reason], status_code)

    def extra(self) -> Dict[str, Any]:
        return {"reason": self.reason, "source": self.code}


class IncompleteBracketState(FaceoffError):
    """A TBD slot blocks completion, or a winner is not one of the two competitors."""
    status_code = 409
    kind = "incomplete_bracket"

    def __init__(self, message: str, matchup_id: Optional[int] = None):
        self.matchup_id = matchup_id
        super().__init__(message)

    def extra(self) -> Dict[str, Any]:
        return {"matchup_id": self.matchup_id} if self.matchup_id is not None else {}


class InvalidTransition(FaceoffError):
    """A round or matchup lifecycle call made from a state that does not allow it."""
    status_code = 409
    kind = "invalid_transition"


class StorageError(FaceoffError):
    status_code = 500
    kind = "storage_error"

    def __init__(self, message: str = "The operation failed, please retry"):
        super().__init__(message)

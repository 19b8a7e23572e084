"""
Domain errors shared by the bracket services.

Routes translate these into HTTP responses; services never raise HTTPException.
"""


class BracketError(Exception):
    """Base class for bracket domain errors"""

    pass


class ValidationError(BracketError):
    """Input rejected unchanged: malformed, tied or out-of-range scores, bad seed tables, bad schedules."""

    pass


class NotFoundError(BracketError):
    """Unknown match, player or tournament id."""

    pass


class InconsistentStateError(BracketError):
    """Stored bracket data contradicts the match graph (missing target, foreign occupant in a slot)."""

    pass


class ConcurrentUpdateError(BracketError):
    """A compare-and-swap update found the row changed by another writer."""

    def __init__(self, match_id: int, field: str, expected, actual):
        self.match_id = match_id
        self.field = field
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Match {match_id}: expected {field}={expected!r}, found {actual!r}"
        )

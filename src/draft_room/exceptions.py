class DraftRoomException(Exception):
    """Base class for every user-facing draft error."""

    kind: str = "error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundError(DraftRoomException):
    """A referenced season, team or item does not exist."""

    kind = "not_found"


class DraftValidationError(DraftRoomException):
    """Malformed input: bad ids, out-of-range settings, unknown formats."""

    kind = "validation"


class ForbiddenError(DraftRoomException):
    """The caller lacks the team ownership or commissioner role required."""

    kind = "forbidden"


class ConflictError(DraftRoomException):
    """A draft precondition failed (wrong status, already drafted, not your turn, ...)."""

    kind = "conflict"


class ConfigurationError(DraftRoomException):
    """Raised when configuration values are missing or invalid."""

    kind = "configuration"

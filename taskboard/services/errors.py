"""
Exception hierarchy shared by the taskboard services.

Every error carries the ErrorKind it is reported as and whether a caller can
reasonably retry the operation that raised it.
"""

from taskboard.models import ERROR_STATUS_CODES, ErrorKind


class TaskBoardError(Exception):
    """Base exception for taskboard service errors."""

    kind: ErrorKind = ErrorKind.STORE_FAILURE
    recoverable: bool = False

    @property
    def status_code(self) -> int:
        return ERROR_STATUS_CODES[self.kind]


class NotFoundError(TaskBoardError):
    """Raised when a task, column or board does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity: str, entity_id: object = None):
        self.entity = entity
        self.entity_id = entity_id
        if entity_id is None:
            message = f"{entity.capitalize()} not found"
        else:
            message = f"{entity.capitalize()} with id {entity_id} not found"
        super().__init__(message)


class ForbiddenError(TaskBoardError):
    """Raised when the requester does not own the board."""

    kind = ErrorKind.FORBIDDEN


class InvalidArgumentError(TaskBoardError):
    """Raised for malformed input such as a negative index."""

    kind = ErrorKind.INVALID_ARGUMENT


class CrossBoardMoveError(InvalidArgumentError):
    """Raised when a move targets a column on a different board."""
    pass


class ConflictError(TaskBoardError):
    """Raised when a transaction lost against a concurrent modification."""

    kind = ErrorKind.CONFLICT
    recoverable = True


class TransactionTimeoutError(ConflictError):
    """Raised when a transaction exceeded its time budget and was aborted."""
    pass


class StoreFailureError(TaskBoardError):
    """Raised for infrastructure failures of the persistence store."""

    kind = ErrorKind.STORE_FAILURE

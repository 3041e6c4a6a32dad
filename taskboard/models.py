"""
Pydantic models for taskboard.

Defines boards, columns and tasks as seen by callers, plus the request and
result types of the relocation operation.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


class Priority(str, Enum):
    """Task priority levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ErrorKind(str, Enum):
    """Failure categories reported to callers of board operations."""

    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    INVALID_ARGUMENT = "invalid_argument"
    CONFLICT = "conflict"
    STORE_FAILURE = "store_failure"


# Status signal per error kind, HTTP-style so a web layer can pass it through
ERROR_STATUS_CODES = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.INVALID_ARGUMENT: 400,
    ErrorKind.CONFLICT: 409,
    ErrorKind.STORE_FAILURE: 500,
}


class Board(BaseModel):
    """
    A board owned by a single user.

    The owner (`created_by`) is the only identity allowed to change anything
    on the board, and never changes after creation.
    """

    id: UUID = Field(default_factory=uuid4, description="Unique identifier for the board")
    name: str = Field(..., min_length=1, max_length=200, description="Board name")
    created_by: str = Field(..., min_length=1, description="Owner identity")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Creation timestamp")

    model_config = ConfigDict(frozen=True)


class Column(BaseModel):
    """
    An ordered bucket of tasks within a board.

    `task_ids` is the display order of the column. It is a read-only snapshot;
    membership only changes through the board store inside a transaction.
    """

    id: UUID = Field(default_factory=uuid4, description="Unique identifier for the column")
    board_id: UUID = Field(..., description="Owning board")
    title: str = Field(..., min_length=1, max_length=200, description="Column title")
    position: int = Field(default=0, ge=0, description="Order of the column within its board")
    task_ids: tuple[UUID, ...] = Field(default=(), description="Ordered task membership")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_unique_members(self) -> "Column":
        """
        Reject sequences that list the same task twice.

        Raises:
            ValueError: If a task id appears more than once
        """
        if len(set(self.task_ids)) != len(self.task_ids):
            raise ValueError("A task can appear only once in a column")
        return self

    @computed_field
    @property
    def task_count(self) -> int:
        """Number of tasks in the column."""
        return len(self.task_ids)


class Task(BaseModel):
    """
    A unit of work that belongs to exactly one column at a time.

    `column_id` mirrors the membership recorded on the column and is kept in
    step with it by every write path.
    """

    id: UUID = Field(default_factory=uuid4, description="Unique identifier for the task")
    column_id: UUID = Field(..., description="Column currently holding the task")
    title: str = Field(..., min_length=1, max_length=500, description="Task title")
    description: Optional[str] = Field(default=None, max_length=5000, description="Task description")
    priority: Priority = Field(default=Priority.MEDIUM, description="Task priority")
    due_date: Optional[datetime] = Field(default=None, description="Due date")
    assigned_to: Optional[str] = Field(default=None, description="Assignee identity")
    created_by: str = Field(..., min_length=1, description="Creator identity")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(default=None, description="Last modification timestamp")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174001",
                "column_id": "123e4567-e89b-12d3-a456-426614174000",
                "title": "Write release notes",
                "priority": "high",
                "created_by": "user-1",
                "created_at": "2025-01-14T10:00:00",
            }
        }
    )


class MoveRequest(BaseModel):
    """Inbound relocation request."""

    task_id: UUID
    dest_column_id: UUID
    dest_index: int = Field(..., ge=0, description="Index in the destination after removal")
    requester_id: str = Field(..., min_length=1)


class MoveOutcome(BaseModel):
    """What a successful relocation did."""

    task_id: UUID
    source_column_id: UUID
    dest_column_id: UUID
    index: int = Field(..., ge=0, description="Effective index after clamping")
    attempts: int = Field(default=1, ge=1)

    @computed_field
    @property
    def same_column(self) -> bool:
        """True when the move only reordered a single column."""
        return self.source_column_id == self.dest_column_id


class MoveResult(BaseModel):
    """
    Externally observable response of a relocation request.

    Either `success` is True and `outcome` is set, or `error_kind`,
    `message` and `status_code` describe the failure.
    """

    success: bool
    outcome: Optional[MoveOutcome] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    status_code: int = 200

    @classmethod
    def ok(cls, outcome: MoveOutcome) -> "MoveResult":
        return cls(success=True, outcome=outcome, message="Task moved successfully")

    @classmethod
    def failed(cls, kind: ErrorKind, message: str) -> "MoveResult":
        return cls(
            success=False,
            error_kind=kind,
            message=message,
            status_code=ERROR_STATUS_CODES[kind],
        )


class RetryPolicy(BaseModel):
    """Retry and timeout settings for store transactions."""

    max_attempts: int = Field(default=3, ge=1, description="Attempts per operation")
    retry_backoff: float = Field(default=0.05, ge=0, description="First retry delay in seconds")
    max_backoff: float = Field(default=1.0, ge=0, description="Upper bound for retry delay")
    transaction_timeout: float = Field(default=10.0, gt=0, description="Seconds per attempt")

    def delay_for(self, attempt: int) -> float:
        """
        Backoff delay to wait after a failed attempt.

        Args:
            attempt: 1-based number of the attempt that just failed

        Returns:
            Delay in seconds, doubling per attempt and capped at max_backoff
        """
        return min(self.retry_backoff * (2 ** (attempt - 1)), self.max_backoff)


class MembershipViolation(BaseModel):
    """A single breach of the task/column membership invariant."""

    task_id: UUID
    recorded_column_id: Optional[UUID] = Field(
        default=None, description="Column named by task.column_id (None if the task is missing)"
    )
    holding_column_ids: List[UUID] = Field(
        default_factory=list, description="Columns whose sequence lists the task"
    )
    reason: str

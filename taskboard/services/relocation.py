"""
Task relocation engine for taskboard.

Moves a task to a position in the same or another column of its board as a
single store transaction: remove from the source sequence, insert into the
destination sequence, repoint task.column_id. Either all three steps commit
or none do.

Index convention: dest_index is the position in the destination sequence as
it looks after the task has been removed. In a same-column move of T within
[A, T, B, C], index 0 gives [T, A, B, C] and index 2 gives [A, B, T, C].
Indexes past the end append; negative indexes are rejected.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Union
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.database import DatabaseManager
from taskboard.logging_config import get_logger
from taskboard.models import ErrorKind, MoveOutcome, MoveRequest, MoveResult, RetryPolicy
from taskboard.services.authorization import authorize
from taskboard.services.board_store import BoardStore
from taskboard.services.errors import (
    ConflictError,
    CrossBoardMoveError,
    InvalidArgumentError,
    NotFoundError,
    StoreFailureError,
    TaskBoardError,
)
from taskboard.services.transaction import run_with_retry

logger = get_logger(__name__)


class RelocationEngine:
    """
    Moves tasks between and within columns.

    Holds no per-request state; each call runs in its own transaction and
    any number of calls may run concurrently against the same store.
    """

    def __init__(self, db_manager: DatabaseManager, policy: Optional[RetryPolicy] = None) -> None:
        """
        Initialize the engine.

        Args:
            db_manager: Initialized database manager
            policy: Retry and timeout settings (defaults if not provided)
        """
        self.db_manager = db_manager
        self.policy = policy or RetryPolicy()

    async def relocate(
        self,
        task_id: UUID,
        dest_column_id: UUID,
        dest_index: int,
        requester_id: str,
    ) -> MoveOutcome:
        """
        Move a task to dest_index of the destination column.

        Args:
            task_id: UUID of the task to move
            dest_column_id: UUID of the destination column (may be the current one)
            dest_index: Target index, counted after removing the task
            requester_id: Identity of the authenticated requester

        Returns:
            MoveOutcome describing the committed move

        Raises:
            InvalidArgumentError: If dest_index is negative
            CrossBoardMoveError: If the destination column is on another board
            NotFoundError: If the task, a column or a board is missing
            ForbiddenError: If the requester does not own the board
            ConflictError: If concurrent modifications persisted past all retries
            StoreFailureError: For infrastructure failures or inconsistent
                               stored membership
        """
        if dest_index < 0:
            raise InvalidArgumentError(f"Destination index must be >= 0, got {dest_index}")

        logger.debug(
            f"Relocating task {task_id} to column {dest_column_id} at {dest_index} "
            f"for {requester_id}"
        )

        async def unit_of_work(session: AsyncSession) -> MoveOutcome:
            return await self._relocate_in_session(
                BoardStore(session), task_id, dest_column_id, dest_index, requester_id
            )

        try:
            outcome, attempts = await run_with_retry(self.db_manager, unit_of_work, self.policy)
        except TaskBoardError as e:
            logger.error(f"Failed to relocate task {task_id}: {e}", exc_info=True)
            raise

        outcome = outcome.model_copy(update={"attempts": attempts})
        logger.info(
            f"Relocated task {task_id}: {outcome.source_column_id} -> "
            f"{outcome.dest_column_id} at index {outcome.index} (attempts={attempts})"
        )
        return outcome

    async def _relocate_in_session(
        self,
        store: BoardStore,
        task_id: UUID,
        dest_column_id: UUID,
        dest_index: int,
        requester_id: str,
    ) -> MoveOutcome:
        task = await store.load_task(task_id)
        if task is None:
            raise NotFoundError("task", task_id)

        source_column_id = UUID(task.column_id)
        seen_version = task.version

        # Authorization runs against the board the task is on now
        source_board = await authorize(store, source_column_id, requester_id)
        dest_board = await authorize(store, dest_column_id, requester_id)
        if dest_board.id != source_board.id:
            raise CrossBoardMoveError(
                f"Cannot move task to column {dest_column_id} on another board"
            )

        await self._check_membership(store, task_id, seen_version, source_column_id, dest_column_id)

        removed = await store.remove_from_column(source_column_id, task_id)
        if not removed:
            logger.warning(
                f"Task {task_id} was missing from its column {source_column_id}; "
                f"inserting into {dest_column_id} anyway"
            )

        index = await store.insert_into_column(dest_column_id, task_id, dest_index)

        task.column_id = str(dest_column_id)
        task.updated_at = datetime.utcnow()
        await store.save_task(task)

        return MoveOutcome(
            task_id=task_id,
            source_column_id=source_column_id,
            dest_column_id=dest_column_id,
            index=index,
        )

    async def _check_membership(
        self,
        store: BoardStore,
        task_id: UUID,
        seen_version: int,
        source_column_id: UUID,
        dest_column_id: UUID,
    ) -> None:
        """
        Verify the column sequences agree with the task row loaded earlier.

        The task row and the column rows are read at different moments, so a
        move committed in between shows up as a disagreement. If the task row
        changed since it was loaded, this attempt lost a race. If it did not,
        the stored membership itself is inconsistent.

        A task listed in no column at all is let through; the move places it.

        Raises:
            ConflictError: If another transaction changed the task or the
                           sequences while this one was reading
            StoreFailureError: If a column other than the recorded one lists
                               the task
        """
        holder = await store.find_holding_column(task_id)
        in_source = task_id in await store.column_task_ids(source_column_id)
        in_dest = (
            dest_column_id != source_column_id
            and task_id in await store.column_task_ids(dest_column_id)
        )

        if holder == source_column_id and in_source and not in_dest:
            return

        current = await store.reload_task(task_id)
        if current is None or current.version != seen_version:
            raise ConflictError(f"Task {task_id} was changed by another transaction")

        if holder is not None and holder != source_column_id:
            logger.error(
                f"Task {task_id} is listed in column {holder} but its column_id is "
                f"{source_column_id}"
            )
            raise StoreFailureError(
                f"Inconsistent membership: task {task_id} is listed in column {holder} "
                f"but recorded in column {source_column_id}"
            )

        if holder is None and not in_source and not in_dest:
            return

        raise ConflictError(f"Column membership of task {task_id} changed during the move")

    async def handle(self, request: Union[MoveRequest, Dict[str, Any]]) -> MoveResult:
        """
        Serve a relocation request, reporting failures instead of raising.

        Args:
            request: MoveRequest or its raw mapping
                     (task_id, dest_column_id, dest_index, requester_id)

        Returns:
            MoveResult with either the outcome or the error kind, message
            and status code
        """
        if not isinstance(request, MoveRequest):
            try:
                request = MoveRequest.model_validate(request)
            except ValidationError as e:
                logger.warning(f"Rejected malformed move request: {e.error_count()} error(s)")
                return MoveResult.failed(ErrorKind.INVALID_ARGUMENT, f"Invalid move request: {e}")

        try:
            outcome = await self.relocate(
                request.task_id,
                request.dest_column_id,
                request.dest_index,
                request.requester_id,
            )
        except TaskBoardError as e:
            return MoveResult.failed(e.kind, str(e))

        return MoveResult.ok(outcome)

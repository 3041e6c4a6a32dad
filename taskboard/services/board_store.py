"""
Board store for taskboard.

Wraps an AsyncSession with the load/save operations the board services rely
on, and owns every mutation of a column's ordered task membership. All
methods act inside the caller's transaction and never commit.
"""

from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.database import BoardORM, ColumnEntryORM, ColumnORM, TaskORM
from taskboard.logging_config import get_logger
from taskboard.models import Board, Column, Priority, Task
from taskboard.services.errors import InvalidArgumentError, NotFoundError, StoreFailureError

logger = get_logger(__name__)


class BoardStore:
    """
    Persistence operations for boards, columns and tasks.

    Entries removed from a column are held until they are inserted elsewhere
    in the same unit of work, so a move keeps the same entry row and the
    one-column-per-task constraint is never violated mid-transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize the store with a database session.

        Args:
            session: Active async database session, normally inside a transaction
        """
        self.session = session
        self._released: Dict[str, ColumnEntryORM] = {}

    # ==============================================================================
    # CONVERSION HELPERS
    # ==============================================================================

    @staticmethod
    def board_to_pydantic(board_orm: BoardORM) -> Board:
        return Board(
            id=UUID(board_orm.id),
            name=board_orm.name,
            created_by=board_orm.created_by,
            created_at=board_orm.created_at,
        )

    @staticmethod
    def column_to_pydantic(column_orm: ColumnORM) -> Column:
        return Column(
            id=UUID(column_orm.id),
            board_id=UUID(column_orm.board_id),
            title=column_orm.title,
            position=column_orm.position,
            task_ids=tuple(UUID(entry.task_id) for entry in column_orm.entries),
        )

    @staticmethod
    def task_to_pydantic(task_orm: TaskORM) -> Task:
        return Task(
            id=UUID(task_orm.id),
            column_id=UUID(task_orm.column_id),
            title=task_orm.title,
            description=task_orm.description,
            priority=Priority(task_orm.priority),
            due_date=task_orm.due_date,
            assigned_to=task_orm.assigned_to,
            created_by=task_orm.created_by,
            created_at=task_orm.created_at,
            updated_at=task_orm.updated_at,
        )

    # ==============================================================================
    # LOADS
    # ==============================================================================

    async def load_task(self, task_id: UUID) -> Optional[TaskORM]:
        """
        Load a task by id.

        Args:
            task_id: UUID of the task

        Returns:
            TaskORM instance or None if absent
        """
        with self.session.no_autoflush:
            return await self.session.get(TaskORM, str(task_id))

    async def reload_task(self, task_id: UUID) -> Optional[TaskORM]:
        """
        Re-read a task row from the store, replacing the loaded state.

        Returns:
            TaskORM instance or None if the task no longer exists
        """
        with self.session.no_autoflush:
            return await self.session.get(TaskORM, str(task_id), populate_existing=True)

    async def find_holding_column(self, task_id: UUID) -> Optional[UUID]:
        """
        Find the column whose sequence lists a task, whatever task.column_id says.

        Returns:
            UUID of the holding column, or None if no column lists the task
        """
        with self.session.no_autoflush:
            result = await self.session.execute(
                select(ColumnEntryORM.column_id).where(ColumnEntryORM.task_id == str(task_id))
            )
            column_id = result.scalar_one_or_none()
        return UUID(column_id) if column_id is not None else None

    async def load_column(self, column_id: UUID) -> Optional[ColumnORM]:
        """
        Load a column and its ordered entries.

        Args:
            column_id: UUID of the column

        Returns:
            ColumnORM instance or None if absent
        """
        with self.session.no_autoflush:
            return await self.session.get(ColumnORM, str(column_id))

    async def load_board(self, board_id: UUID) -> Optional[BoardORM]:
        """
        Load a board by id.

        Args:
            board_id: UUID of the board

        Returns:
            BoardORM instance or None if absent
        """
        with self.session.no_autoflush:
            return await self.session.get(BoardORM, str(board_id))

    async def _get_column_or_raise(self, column_id: UUID) -> ColumnORM:
        column = await self.load_column(column_id)
        if column is None:
            raise NotFoundError("column", column_id)
        return column

    async def column_task_ids(self, column_id: UUID) -> List[UUID]:
        """
        Get the ordered task ids of a column.

        Raises:
            NotFoundError: If the column does not exist
        """
        column = await self._get_column_or_raise(column_id)
        return [UUID(entry.task_id) for entry in column.entries]

    # ==============================================================================
    # WRITES
    # ==============================================================================

    async def save_task(self, task_orm: TaskORM) -> None:
        """
        Flush pending changes of a task.

        A concurrent change to the same task surfaces here as a
        StaleDataError from the version check.
        """
        self.session.add(task_orm)
        await self.session.flush()

    async def remove_from_column(self, column_id: UUID, task_id: UUID) -> bool:
        """
        Remove a task from a column's ordered membership.

        Removing a task that is not listed is a no-op.

        Args:
            column_id: UUID of the column
            task_id: UUID of the task to remove

        Returns:
            True if the task was listed and has been removed

        Raises:
            NotFoundError: If the column does not exist
        """
        column = await self._get_column_or_raise(column_id)
        key = str(task_id)

        entry = next((e for e in column.entries if e.task_id == key), None)
        if entry is None:
            logger.debug(f"Task {task_id} not listed in column {column_id}, nothing to remove")
            return False

        column.entries.remove(entry)
        column.touch()
        self._released[key] = entry
        return True

    async def insert_into_column(self, column_id: UUID, task_id: UUID, index: int) -> int:
        """
        Insert a task into a column's ordered membership.

        Args:
            column_id: UUID of the column
            task_id: UUID of the task to insert
            index: Target index; values past the end append

        Returns:
            The index the task was actually placed at

        Raises:
            NotFoundError: If the column does not exist
            InvalidArgumentError: If index is negative
            StoreFailureError: If the task is already listed in the column
        """
        if index < 0:
            raise InvalidArgumentError(f"Index must be >= 0, got {index}")

        column = await self._get_column_or_raise(column_id)
        key = str(task_id)

        if any(e.task_id == key for e in column.entries):
            raise StoreFailureError(f"Task {task_id} is already listed in column {column_id}")

        effective_index = min(index, len(column.entries))
        entry = self._released.pop(key, None)
        if entry is None:
            entry = ColumnEntryORM(task_id=key)

        column.entries.insert(effective_index, entry)
        column.touch()
        return effective_index

    async def add_task(self, task_orm: TaskORM) -> int:
        """
        Persist a new task and append it to its column.

        Args:
            task_orm: New task; its column_id names the column to join

        Returns:
            Position of the task in the column
        """
        self.session.add(task_orm)
        await self.session.flush()
        column = await self._get_column_or_raise(UUID(task_orm.column_id))
        return await self.insert_into_column(UUID(column.id), UUID(task_orm.id), len(column.entries))

    async def delete_task(self, task_orm: TaskORM) -> None:
        """
        Remove a task from its column and delete it.

        Args:
            task_orm: Task to delete
        """
        await self.remove_from_column(UUID(task_orm.column_id), UUID(task_orm.id))
        entry = self._released.pop(task_orm.id, None)
        if entry is not None:
            await self.session.delete(entry)
        await self.session.flush()
        await self.session.delete(task_orm)
        await self.session.flush()

"""
Task service for taskboard.

Implements task creation, reading, field updates and deletion. Every
operation is checked against board ownership, and creation and deletion keep
the column membership in step with task.column_id. Changing a task's column
is left to the relocation engine.
"""

from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID, uuid4

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.database import TaskORM
from taskboard.logging_config import get_logger
from taskboard.models import Priority, Task
from taskboard.services.authorization import authorize
from taskboard.services.board_store import BoardStore
from taskboard.services.errors import InvalidArgumentError, NotFoundError, TaskBoardError

logger = get_logger(__name__)

_UNSET = object()


class TaskService:
    """
    Service layer for task operations.

    Works inside the caller's session; the caller decides when to commit.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize task service with database session.

        Args:
            session: Active async database session
        """
        self.session = session
        self.store = BoardStore(session)

    async def _get_task_or_raise(self, task_id: UUID) -> TaskORM:
        """
        Get a task by ID or raise an exception.

        Raises:
            NotFoundError: If task does not exist
        """
        task_orm = await self.store.load_task(task_id)
        if task_orm is None:
            raise NotFoundError("task", task_id)
        return task_orm

    # ==============================================================================
    # CREATE OPERATIONS
    # ==============================================================================

    async def create_task(
        self,
        column_id: UUID,
        requester_id: str,
        title: str,
        description: Optional[str] = None,
        priority: Priority = Priority.MEDIUM,
        due_date: Optional[datetime] = None,
        assigned_to: Optional[str] = None,
        task_id: Optional[UUID] = None,
    ) -> Task:
        """
        Create a task at the end of a column.

        Args:
            column_id: UUID of the column to add the task to
            requester_id: Identity of the authenticated requester
            title: Task title
            description: Optional description
            priority: Task priority
            due_date: Optional due date
            assigned_to: Optional assignee identity
            task_id: Optional UUID for the task

        Returns:
            Created Task instance

        Raises:
            NotFoundError: If the column or its board does not exist
            ForbiddenError: If the requester does not own the board
            InvalidArgumentError: If the task fields fail validation
        """
        logger.debug(f"Creating task: title='{title}', column_id={column_id}")

        await authorize(self.store, column_id, requester_id)

        try:
            task = Task(
                id=task_id or uuid4(),
                column_id=column_id,
                title=title,
                description=description,
                priority=priority,
                due_date=due_date,
                assigned_to=assigned_to,
                created_by=requester_id,
            )
        except ValidationError as e:
            raise InvalidArgumentError(f"Invalid task: {e}") from e

        task_orm = TaskORM(
            id=str(task.id),
            column_id=str(task.column_id),
            title=task.title,
            description=task.description,
            priority=task.priority.value,
            due_date=task.due_date,
            assigned_to=task.assigned_to,
            created_by=task.created_by,
            created_at=task.created_at,
        )
        position = await self.store.add_task(task_orm)

        logger.info(f"Created task: id={task.id}, column_id={column_id}, position={position}")
        return task

    # ==============================================================================
    # READ OPERATIONS
    # ==============================================================================

    async def get_task(self, task_id: UUID, requester_id: str) -> Task:
        """
        Get a task the requester is allowed to see.

        Raises:
            NotFoundError: If the task, its column or its board does not exist
            ForbiddenError: If the requester does not own the board
        """
        task_orm = await self._get_task_or_raise(task_id)
        await authorize(self.store, UUID(task_orm.column_id), requester_id)
        return self.store.task_to_pydantic(task_orm)

    async def list_tasks(self, column_id: UUID, requester_id: str) -> List[Task]:
        """
        Get the tasks of a column in display order.

        Args:
            column_id: UUID of the column
            requester_id: Identity of the authenticated requester

        Returns:
            List of tasks ordered as in the column

        Raises:
            NotFoundError: If the column or its board does not exist
            ForbiddenError: If the requester does not own the board
        """
        await authorize(self.store, column_id, requester_id)
        task_ids = await self.store.column_task_ids(column_id)
        if not task_ids:
            return []

        result = await self.session.execute(
            select(TaskORM).where(TaskORM.id.in_([str(t) for t in task_ids]))
        )
        by_id = {task_orm.id: task_orm for task_orm in result.scalars().all()}

        tasks = []
        for task_id in task_ids:
            task_orm = by_id.get(str(task_id))
            if task_orm is None:
                logger.warning(f"Column {column_id} lists missing task {task_id}")
                continue
            tasks.append(self.store.task_to_pydantic(task_orm))
        return tasks

    # ==============================================================================
    # UPDATE OPERATIONS
    # ==============================================================================

    async def update_task(
        self,
        task_id: UUID,
        requester_id: str,
        title: Any = _UNSET,
        description: Any = _UNSET,
        priority: Any = _UNSET,
        due_date: Any = _UNSET,
        assigned_to: Any = _UNSET,
        column_id: Optional[UUID] = None,
    ) -> Task:
        """
        Update a task's plain fields.

        Only the fields passed are changed. Passing None clears description,
        due_date or assigned_to.

        Args:
            task_id: UUID of the task to update
            requester_id: Identity of the authenticated requester
            title: New title
            description: New description, or None to clear it
            priority: New priority
            due_date: New due date, or None to clear it
            assigned_to: New assignee, or None to clear it
            column_id: Accepted only if equal to the current column

        Returns:
            Updated Task instance

        Raises:
            NotFoundError: If the task, its column or its board does not exist
            ForbiddenError: If the requester does not own the board
            InvalidArgumentError: If no field is given, the fields fail
                                  validation, or column_id names another column
        """
        changes = {
            k: v for k, v in [
                ("title", title),
                ("description", description),
                ("priority", priority),
                ("due_date", due_date),
                ("assigned_to", assigned_to),
            ] if v is not _UNSET
        }

        try:
            task_orm = await self._get_task_or_raise(task_id)
            await authorize(self.store, UUID(task_orm.column_id), requester_id)

            if column_id is not None and str(column_id) != task_orm.column_id:
                raise InvalidArgumentError(
                    "Changing a task's column must go through a move, not an update"
                )
            if not changes:
                raise InvalidArgumentError("At least one field must be provided")

            current = self.store.task_to_pydantic(task_orm)
            try:
                updated = Task.model_validate({**current.model_dump(), **changes})
            except ValidationError as e:
                raise InvalidArgumentError(f"Invalid task: {e}") from e

            task_orm.title = updated.title
            task_orm.description = updated.description
            task_orm.priority = updated.priority.value
            task_orm.due_date = updated.due_date
            task_orm.assigned_to = updated.assigned_to
            task_orm.updated_at = datetime.utcnow()
            await self.store.save_task(task_orm)

            logger.info(f"Updated task: id={task_id}, fields={sorted(changes)}")
            return self.store.task_to_pydantic(task_orm)
        except TaskBoardError as e:
            logger.error(f"Failed to update task {task_id}: {e}", exc_info=True)
            raise

    # ==============================================================================
    # DELETE OPERATIONS
    # ==============================================================================

    async def delete_task(self, task_id: UUID, requester_id: str) -> None:
        """
        Delete a task and remove it from its column.

        Raises:
            NotFoundError: If the task, its column or its board does not exist
            ForbiddenError: If the requester does not own the board
        """
        try:
            task_orm = await self._get_task_or_raise(task_id)
            await authorize(self.store, UUID(task_orm.column_id), requester_id)
            await self.store.delete_task(task_orm)
            logger.info(f"Deleted task: id={task_id}")
        except TaskBoardError as e:
            logger.error(f"Failed to delete task {task_id}: {e}", exc_info=True)
            raise

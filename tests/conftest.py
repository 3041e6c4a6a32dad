"""
Pytest configuration and fixtures for taskboard tests.

Provides database fixtures, board seeding factories, and helpers to read
back column membership.
"""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from sqlalchemy import select

from taskboard.database import (
    BoardORM,
    ColumnEntryORM,
    ColumnORM,
    DatabaseManager,
    TaskORM,
)
from taskboard.models import RetryPolicy
from taskboard.services.relocation import RelocationEngine

OWNER_ID = "owner-1"
INTRUDER_ID = "intruder-9"


@pytest_asyncio.fixture
async def db_manager():
    """
    Create an in-memory SQLite database for testing.

    Yields:
        DatabaseManager instance with in-memory database
    """
    manager = DatabaseManager("sqlite+aiosqlite:///:memory:")
    await manager.initialize()

    yield manager

    await manager.close()


@pytest_asyncio.fixture
async def file_db_manager(tmp_path):
    """
    Create a file-backed SQLite database.

    Separate sessions get separate connections, so transactions can
    actually overlap.
    """
    manager = DatabaseManager(f"sqlite+aiosqlite:///{tmp_path / 'board.db'}")
    await manager.initialize()

    yield manager

    await manager.close()


@pytest_asyncio.fixture
async def db_session(db_manager):
    """
    Provide a database session that commits on exit.

    Args:
        db_manager: Database manager fixture

    Yields:
        AsyncSession for database operations
    """
    async with db_manager.get_session() as session:
        yield session


@pytest.fixture
def owner_id():
    return OWNER_ID


@pytest.fixture
def intruder_id():
    return INTRUDER_ID


@pytest.fixture
def fast_policy():
    """Retry policy with near-zero backoff for tests."""
    return RetryPolicy(max_attempts=3, retry_backoff=0.001, max_backoff=0.01, transaction_timeout=5.0)


@pytest.fixture
def engine(db_manager, fast_policy):
    return RelocationEngine(db_manager, fast_policy)


async def seed_board(
    db_manager: DatabaseManager,
    columns: Dict[str, List[str]],
    owner: str = OWNER_ID,
    name: str = "Sprint",
) -> dict:
    """
    Create a board with columns and tasks directly in the database.

    Args:
        db_manager: Initialized database manager
        columns: Column title -> ordered task titles
        owner: Board owner identity
        name: Board name

    Returns:
        Dictionary with "board" id, "columns" (title -> id) and
        "tasks" (title -> id)
    """
    board_id = uuid4()
    ids = {"board": board_id, "columns": {}, "tasks": {}}

    async with db_manager.get_session() as session:
        session.add(BoardORM(
            id=str(board_id),
            name=name,
            created_by=owner,
            created_at=datetime.utcnow(),
        ))

        for position, (title, task_titles) in enumerate(columns.items()):
            column_id = uuid4()
            column = ColumnORM(
                id=str(column_id),
                board_id=str(board_id),
                title=title,
                position=position,
            )
            session.add(column)
            ids["columns"][title] = column_id

            for task_title in task_titles:
                task_id = uuid4()
                session.add(TaskORM(
                    id=str(task_id),
                    column_id=str(column_id),
                    title=task_title,
                    priority="medium",
                    created_by=owner,
                    created_at=datetime.utcnow(),
                ))
                column.entries.append(ColumnEntryORM(task_id=str(task_id)))
                ids["tasks"][task_title] = task_id

    return ids


async def read_layout(db_manager: DatabaseManager, board_ids: Optional[dict] = None) -> dict:
    """
    Read back membership as titles.

    Returns:
        Dictionary with "columns" (column title -> ordered task titles) and
        "task_columns" (task title -> column title named by task.column_id)
    """
    async with db_manager.get_session() as session:
        column_query = select(ColumnORM).order_by(ColumnORM.position)
        if board_ids is not None:
            column_query = column_query.where(ColumnORM.board_id == str(board_ids["board"]))
        columns = (await session.execute(column_query)).scalars().all()
        tasks = {t.id: t for t in (await session.execute(select(TaskORM))).scalars().all()}
        column_titles = {c.id: c.title for c in columns}

        return {
            "columns": {
                c.title: [tasks[e.task_id].title if e.task_id in tasks else e.task_id for e in c.entries]
                for c in columns
            },
            "task_columns": {
                t.title: column_titles.get(t.column_id, t.column_id) for t in tasks.values()
                if board_ids is None or t.column_id in column_titles
            },
        }


@pytest.fixture
def seed():
    """Factory fixture exposing seed_board to tests."""
    return seed_board


@pytest.fixture
def layout():
    """Factory fixture exposing read_layout to tests."""
    return read_layout

"""
Database layer for taskboard.

Provides SQLAlchemy ORM models, async engine/session management, and database
initialization. Column membership is stored as ordered entry rows owned by
the column; columns and tasks carry a version counter so concurrent writers
to the same row are detected at flush time.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from taskboard.config import DEFAULT_DATABASE_URL
from taskboard.logging_config import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


class BoardORM(Base):
    """SQLAlchemy ORM model for boards."""
    __tablename__ = "boards"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    created_by: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    def __repr__(self) -> str:
        return f"<BoardORM(id={self.id}, name={self.name})>"


class ColumnORM(Base):
    """
    SQLAlchemy ORM model for columns.

    `entries` is the ordered task membership of the column. Its positions are
    renumbered by the ordering list on every insert or removal. Any change
    to the entries must also touch this row (see `touch`) so the version
    check covers the sequence.
    """
    __tablename__ = "columns"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    board_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("boards.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    entries: Mapped[list["ColumnEntryORM"]] = relationship(
        "ColumnEntryORM",
        order_by="ColumnEntryORM.position",
        collection_class=ordering_list("position"),
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    def touch(self) -> None:
        """Mark the column row dirty so its version is bumped on flush."""
        self.updated_at = datetime.utcnow()

    def __repr__(self) -> str:
        return f"<ColumnORM(id={self.id}, title={self.title}, version={self.version})>"


class ColumnEntryORM(Base):
    """
    One slot of a column's ordered membership.

    `task_id` is unique across all entries: a task sits in at most one column.
    """
    __tablename__ = "column_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    column_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("columns.id"), nullable=False, index=True
    )
    task_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("tasks.id"), nullable=False, unique=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<ColumnEntryORM(column_id={self.column_id}, task_id={self.task_id}, position={self.position})>"


class TaskORM(Base):
    """SQLAlchemy ORM model for tasks."""
    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    column_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("columns.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="medium")
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    assigned_to: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_by: Mapped[str] = mapped_column(String(100), nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<TaskORM(id={self.id}, title={self.title}, column_id={self.column_id})>"


class DatabaseManager:
    """
    Manages database connections and session lifecycle.

    Handles async engine creation, session management, and database
    initialization for both production and testing scenarios.
    """

    def __init__(self, database_url: str = DEFAULT_DATABASE_URL, echo: bool = False):
        """
        Initialize database manager with connection URL.

        Args:
            database_url: SQLAlchemy database URL (default: local SQLite file)
            echo: Log emitted SQL
        """
        self.database_url = database_url
        self.echo = echo
        self.engine: Optional[AsyncEngine] = None
        self.session_maker: Optional[async_sessionmaker[AsyncSession]] = None

    async def initialize(self) -> None:
        """
        Initialize the database engine and create tables.
        """
        try:
            logger.info(f"Initializing database: {self.database_url}")
            self.engine = create_async_engine(self.database_url, echo=self.echo)

            self.session_maker = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )

            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

            logger.info("Database initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}", exc_info=True)
            raise

    async def close(self) -> None:
        """
        Close the database engine and cleanup resources.
        """
        if self.engine:
            logger.info("Closing database connection")
            try:
                await self.engine.dispose()
                self.engine = None
                self.session_maker = None
                logger.info("Database connection closed successfully")
            except Exception as e:
                logger.error(f"Error closing database connection: {e}", exc_info=True)
                raise

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get an async database session with automatic transaction management.

        Yields:
            AsyncSession for database operations

        Example:
            async with db_manager.get_session() as session:
                result = await session.execute(select(TaskORM))
                tasks = result.scalars().all()
        """
        if not self.session_maker:
            raise RuntimeError("DatabaseManager not initialized. Call initialize() first.")

        async with self.session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception as e:
                logger.error(f"Database session error, rolling back: {e}", exc_info=True)
                await session.rollback()
                raise

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Run a block as one all-or-nothing transaction.

        Commits when the block exits normally. Any exception, including
        cancellation, rolls the whole transaction back before propagating.

        Yields:
            AsyncSession bound to the open transaction
        """
        if not self.session_maker:
            raise RuntimeError("DatabaseManager not initialized. Call initialize() first.")

        async with self.session_maker() as session:
            async with session.begin():
                yield session

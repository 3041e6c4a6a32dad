"""Entry point for taskboard.

This module allows running taskboard as a module:
    python -m taskboard move TASK_ID COLUMN_ID INDEX --user USER

Or as an installed command:
    taskboard show BOARD_ID --user USER
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional
from uuid import UUID

from rich.console import Console
from rich.table import Table
from sqlalchemy import select

from taskboard.config import Config
from taskboard.database import ColumnORM, DatabaseManager
from taskboard.logging_config import get_logger, setup_logging
from taskboard.services.authorization import authorize
from taskboard.services.board_store import BoardStore
from taskboard.services.errors import TaskBoardError
from taskboard.services.integrity import find_membership_violations
from taskboard.services.relocation import RelocationEngine
from taskboard.services.task_service import TaskService

logger = get_logger(__name__)

console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="taskboard", description="Manage tasks on boards")
    parser.add_argument("--db", help="SQLAlchemy database URL (overrides config)")
    parser.add_argument("--config", help="Path to config.ini")
    parser.add_argument("--log-level", help="Log level (DEBUG, INFO, ...)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log to the terminal")

    subparsers = parser.add_subparsers(dest="command", required=True)

    move = subparsers.add_parser("move", help="Move a task to a column position")
    move.add_argument("task_id", type=UUID)
    move.add_argument("column_id", type=UUID)
    move.add_argument("index", type=int)
    move.add_argument("--user", required=True, help="Requester identity")

    show = subparsers.add_parser("show", help="Show the columns of a board")
    show.add_argument("board_id", type=UUID)
    show.add_argument("--user", required=True, help="Requester identity")

    check = subparsers.add_parser("check", help="Check task/column membership")
    check.add_argument("--board", type=UUID, help="Limit the check to one board")

    return parser


async def _move(db_manager: DatabaseManager, config: Config, args: argparse.Namespace) -> int:
    engine = RelocationEngine(db_manager, config.get_relocation_config())
    result = await engine.handle({
        "task_id": args.task_id,
        "dest_column_id": args.column_id,
        "dest_index": args.index,
        "requester_id": args.user,
    })

    if result.success:
        console.print(
            f"[green]Moved[/green] {result.outcome.task_id} to "
            f"{result.outcome.dest_column_id} at index {result.outcome.index}"
        )
        return 0

    console.print(f"[red]{result.error_kind.value}[/red] ({result.status_code}): {result.message}")
    return 1


async def _show(db_manager: DatabaseManager, args: argparse.Namespace) -> int:
    async with db_manager.get_session() as session:
        store = BoardStore(session)
        result = await session.execute(
            select(ColumnORM)
            .where(ColumnORM.board_id == str(args.board_id))
            .order_by(ColumnORM.position)
        )
        columns = result.scalars().all()
        if not columns:
            console.print(f"[red]Board {args.board_id} has no columns[/red]")
            return 1

        board = await authorize(store, UUID(columns[0].id), args.user)
        service = TaskService(session)

        table = Table(title=board.name)
        column_tasks = []
        for column in columns:
            table.add_column(column.title)
            column_tasks.append(await service.list_tasks(UUID(column.id), args.user))

        depth = max((len(tasks) for tasks in column_tasks), default=0)
        for row in range(depth):
            table.add_row(*[
                tasks[row].title if row < len(tasks) else ""
                for tasks in column_tasks
            ])

    console.print(table)
    return 0


async def _check(db_manager: DatabaseManager, args: argparse.Namespace) -> int:
    async with db_manager.get_session() as session:
        violations = await find_membership_violations(session, args.board)

    if not violations:
        console.print("[green]Column membership is consistent[/green]")
        return 0

    table = Table(title="Membership violations")
    table.add_column("Task")
    table.add_column("column_id")
    table.add_column("Listed in")
    table.add_column("Problem")
    for violation in violations:
        table.add_row(
            str(violation.task_id),
            str(violation.recorded_column_id or "-"),
            ", ".join(str(c) for c in violation.holding_column_ids) or "-",
            violation.reason,
        )
    console.print(table)
    return 1


async def run(args: argparse.Namespace) -> int:
    """Run one CLI command against the configured database."""
    config = Config(Path(args.config)) if args.config else Config()
    db_config = config.get_database_config()
    db_manager = DatabaseManager(args.db or db_config["url"], echo=db_config["echo"])
    await db_manager.initialize()

    try:
        if args.command == "move":
            return await _move(db_manager, config, args)
        if args.command == "show":
            return await _show(db_manager, args)
        return await _check(db_manager, args)
    except TaskBoardError as e:
        console.print(f"[red]{e.kind.value}[/red] ({e.status_code}): {e}")
        return 1
    finally:
        await db_manager.close()


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point for taskboard.

    Args:
        args: Command-line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    if args is None:
        args = sys.argv[1:]

    parsed = build_parser().parse_args(args)

    # Initialize logging before any other operations
    setup_logging(parsed.log_level, use_console_handler=parsed.verbose)

    try:
        return asyncio.run(run(parsed))
    except KeyboardInterrupt:
        logger.info("taskboard interrupted by user (Ctrl+C)")
        return 130
    except Exception:
        logger.error("Error running taskboard", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())

"""
Membership integrity checks for taskboard.

Verifies that every task's column_id names exactly the one column whose
ordered membership lists the task.
"""

from collections import defaultdict
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.database import ColumnORM, TaskORM
from taskboard.logging_config import get_logger
from taskboard.models import MembershipViolation

logger = get_logger(__name__)


async def find_membership_violations(
    session: AsyncSession,
    board_id: Optional[UUID] = None,
) -> List[MembershipViolation]:
    """
    Report tasks whose column membership and column_id disagree.

    Args:
        session: Active async database session
        board_id: Restrict the check to one board (None checks everything)

    Returns:
        List of violations, empty when the data is consistent
    """
    column_query = select(ColumnORM)
    if board_id is not None:
        column_query = column_query.where(ColumnORM.board_id == str(board_id))
    columns = (await session.execute(column_query)).scalars().all()
    column_ids = [column.id for column in columns]

    holders: Dict[str, List[str]] = defaultdict(list)
    for column in columns:
        for entry in column.entries:
            holders[entry.task_id].append(column.id)

    task_query = select(TaskORM)
    if board_id is not None:
        task_query = task_query.where(TaskORM.column_id.in_(column_ids))
    tasks = {task.id: task for task in (await session.execute(task_query)).scalars().all()}

    # Tasks listed here but recorded against a column elsewhere
    outside = [task_id for task_id in holders if task_id not in tasks]
    if outside:
        result = await session.execute(select(TaskORM).where(TaskORM.id.in_(outside)))
        tasks.update({task.id: task for task in result.scalars().all()})

    violations = []
    for task_id, task in tasks.items():
        holding = holders.get(task_id, [])
        if len(holding) == 1 and holding[0] == task.column_id:
            continue
        if not holding:
            reason = "task is not listed in any column"
        elif len(holding) > 1:
            reason = "task is listed in more than one column"
        else:
            reason = "task is listed in a column other than its column_id"
        violations.append(MembershipViolation(
            task_id=UUID(task_id),
            recorded_column_id=UUID(task.column_id),
            holding_column_ids=[UUID(c) for c in holding],
            reason=reason,
        ))

    for task_id, holding in holders.items():
        if task_id not in tasks:
            violations.append(MembershipViolation(
                task_id=UUID(task_id),
                holding_column_ids=[UUID(c) for c in holding],
                reason="column lists a task that does not exist",
            ))

    if violations:
        logger.warning(f"Found {len(violations)} membership violation(s)")
    else:
        logger.debug("Column membership is consistent")
    return violations

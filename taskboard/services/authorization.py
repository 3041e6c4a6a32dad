"""
Board ownership checks for taskboard.

A board has exactly one owner (its creator), and only the owner may change
the columns and tasks on it.
"""

from uuid import UUID

from taskboard.database import BoardORM
from taskboard.logging_config import get_logger
from taskboard.services.board_store import BoardStore
from taskboard.services.errors import ForbiddenError, NotFoundError

logger = get_logger(__name__)


def check_owner(board: BoardORM, requester_id: str) -> None:
    """
    Confirm that the requester owns the board.

    Args:
        board: Loaded board record
        requester_id: Identity of the authenticated requester

    Raises:
        ForbiddenError: If requester_id is not the board owner
    """
    if board.created_by != requester_id:
        logger.warning(f"Requester {requester_id} denied on board {board.id}")
        raise ForbiddenError("User not authorized for this board")


async def authorize(store: BoardStore, column_id: UUID, requester_id: str) -> BoardORM:
    """
    Resolve the board owning a column and check the requester owns it.

    Args:
        store: Board store bound to the current session
        column_id: UUID of the column being acted on
        requester_id: Identity of the authenticated requester

    Returns:
        The owning BoardORM

    Raises:
        NotFoundError: If the column or its board does not exist
        ForbiddenError: If the requester does not own the board
    """
    column = await store.load_column(column_id)
    if column is None:
        raise NotFoundError("column", column_id)

    board = await store.load_board(UUID(column.board_id))
    if board is None:
        logger.error(f"Column {column_id} references missing board {column.board_id}")
        raise NotFoundError("board", column.board_id)

    check_owner(board, requester_id)
    return board

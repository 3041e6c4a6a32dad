"""
Tests for BoardStore - loads, conversions and ordered membership changes.
"""

from uuid import UUID, uuid4

import pytest

from taskboard.models import Priority
from taskboard.services.board_store import BoardStore
from taskboard.services.errors import InvalidArgumentError, NotFoundError, StoreFailureError


class TestBoardStoreLoads:
    """Tests for load operations and conversions."""

    @pytest.mark.asyncio
    async def test_load_missing_returns_none(self, db_session):
        store = BoardStore(db_session)

        assert await store.load_task(uuid4()) is None
        assert await store.load_column(uuid4()) is None
        assert await store.load_board(uuid4()) is None

    @pytest.mark.asyncio
    async def test_column_to_pydantic_keeps_order(self, db_manager, seed):
        ids = await seed(db_manager, {"X": ["A", "B", "C"]})

        async with db_manager.get_session() as session:
            store = BoardStore(session)
            column = store.column_to_pydantic(await store.load_column(ids["columns"]["X"]))

        assert column.task_ids == (ids["tasks"]["A"], ids["tasks"]["B"], ids["tasks"]["C"])
        assert column.board_id == ids["board"]
        assert column.task_count == 3

    @pytest.mark.asyncio
    async def test_task_and_board_to_pydantic(self, db_manager, seed, owner_id):
        ids = await seed(db_manager, {"X": ["A"]})

        async with db_manager.get_session() as session:
            store = BoardStore(session)
            task = store.task_to_pydantic(await store.load_task(ids["tasks"]["A"]))
            board = store.board_to_pydantic(await store.load_board(ids["board"]))

        assert task.title == "A"
        assert task.column_id == ids["columns"]["X"]
        assert task.priority == Priority.MEDIUM
        assert board.created_by == owner_id

    @pytest.mark.asyncio
    async def test_column_task_ids_missing_column(self, db_session):
        with pytest.raises(NotFoundError):
            await BoardStore(db_session).column_task_ids(uuid4())

    @pytest.mark.asyncio
    async def test_find_holding_column(self, db_manager, seed):
        ids = await seed(db_manager, {"X": ["A"], "Y": ["B"]})

        async with db_manager.get_session() as session:
            store = BoardStore(session)
            assert await store.find_holding_column(ids["tasks"]["A"]) == ids["columns"]["X"]
            assert await store.find_holding_column(ids["tasks"]["B"]) == ids["columns"]["Y"]
            assert await store.find_holding_column(uuid4()) is None

    @pytest.mark.asyncio
    async def test_reload_task_sees_committed_change(self, file_db_manager, seed):
        ids = await seed(file_db_manager, {"X": ["A"]})

        async with file_db_manager.get_session() as reader:
            store = BoardStore(reader)
            task = await store.load_task(ids["tasks"]["A"])
            assert task.version == 1

            async with file_db_manager.get_session() as writer:
                other = await BoardStore(writer).load_task(ids["tasks"]["A"])
                other.title = "Renamed"

            reloaded = await store.reload_task(ids["tasks"]["A"])

        assert reloaded is task
        assert task.title == "Renamed"
        assert task.version == 2

    @pytest.mark.asyncio
    async def test_reload_missing_task(self, db_session):
        assert await BoardStore(db_session).reload_task(uuid4()) is None


class TestBoardStoreMembership:
    """Tests for remove_from_column and insert_into_column."""

    @pytest.mark.asyncio
    async def test_remove_then_insert_same_entry(self, db_manager, seed, layout):
        ids = await seed(db_manager, {"X": ["A", "B"], "Y": ["C"]})

        async with db_manager.get_session() as session:
            store = BoardStore(session)
            assert await store.remove_from_column(ids["columns"]["X"], ids["tasks"]["A"])
            index = await store.insert_into_column(ids["columns"]["Y"], ids["tasks"]["A"], 0)
            task = await store.load_task(ids["tasks"]["A"])
            task.column_id = str(ids["columns"]["Y"])
            assert index == 0
            assert await store.column_task_ids(ids["columns"]["X"]) == [ids["tasks"]["B"]]
            assert await store.column_task_ids(ids["columns"]["Y"]) == [
                ids["tasks"]["A"], ids["tasks"]["C"]
            ]

        state = await layout(db_manager)
        assert state["columns"] == {"X": ["B"], "Y": ["A", "C"]}

    @pytest.mark.asyncio
    async def test_remove_absent_task_is_noop(self, db_manager, seed):
        ids = await seed(db_manager, {"X": ["A"], "Y": ["B"]})

        async with db_manager.get_session() as session:
            store = BoardStore(session)
            removed = await store.remove_from_column(ids["columns"]["X"], ids["tasks"]["B"])
            assert removed is False
            assert await store.column_task_ids(ids["columns"]["X"]) == [ids["tasks"]["A"]]

    @pytest.mark.asyncio
    async def test_insert_clamps_index(self, db_manager, seed):
        ids = await seed(db_manager, {"X": ["A"], "Y": ["B", "C"]})

        async with db_manager.get_session() as session:
            store = BoardStore(session)
            await store.remove_from_column(ids["columns"]["X"], ids["tasks"]["A"])
            index = await store.insert_into_column(ids["columns"]["Y"], ids["tasks"]["A"], 10)
            task = await store.load_task(ids["tasks"]["A"])
            task.column_id = str(ids["columns"]["Y"])

        assert index == 2

    @pytest.mark.asyncio
    async def test_insert_negative_index_rejected(self, db_manager, seed):
        ids = await seed(db_manager, {"X": ["A"]})

        async with db_manager.get_session() as session:
            store = BoardStore(session)
            with pytest.raises(InvalidArgumentError):
                await store.insert_into_column(ids["columns"]["X"], uuid4(), -1)

    @pytest.mark.asyncio
    async def test_insert_duplicate_rejected(self, db_manager, seed):
        ids = await seed(db_manager, {"X": ["A"]})

        async with db_manager.get_session() as session:
            store = BoardStore(session)
            with pytest.raises(StoreFailureError):
                await store.insert_into_column(ids["columns"]["X"], ids["tasks"]["A"], 0)

    @pytest.mark.asyncio
    async def test_membership_change_bumps_column_version(self, db_manager, seed):
        ids = await seed(db_manager, {"X": ["A", "B"]})

        async with db_manager.get_session() as session:
            store = BoardStore(session)
            column = await store.load_column(ids["columns"]["X"])
            assert column.version == 1
            await store.remove_from_column(ids["columns"]["X"], ids["tasks"]["B"])
            await store.insert_into_column(ids["columns"]["X"], ids["tasks"]["B"], 0)

        async with db_manager.get_session() as session:
            column = await BoardStore(session).load_column(ids["columns"]["X"])
            assert column.version == 2
            assert [UUID(e.task_id) for e in column.entries] == [ids["tasks"]["B"], ids["tasks"]["A"]]
            assert [e.position for e in column.entries] == [0, 1]

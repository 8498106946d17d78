"""Tests for the SQLAlchemy task store against a SQLite file database."""

import asyncio
from datetime import timedelta

import pytest

from vesper.db.migrate import migrate_down
from vesper.features.tasks.domain import Task, TaskStatus
from vesper.features.tasks.errors import (
    DuplicateTaskError,
    InvalidTaskError,
    NotFoundError,
    StorageError,
    TaskOverlapError,
)
from vesper.features.tasks.repository import TaskStore
from tests.utils.factories import make_task


def hours(n: float) -> timedelta:
    return timedelta(hours=n)


@pytest.mark.integration
class TestCreate:
    @pytest.mark.asyncio
    async def test_create_assigns_id_and_persists(self, store, base_time):
        created = await store.create(make_task(base_time))

        assert created.id
        fetched = await store.get(created.id)
        assert fetched == created
        assert fetched.start == base_time
        assert fetched.start.tzinfo is not None

    @pytest.mark.asyncio
    async def test_create_keeps_caller_id(self, store, base_time):
        created = await store.create(make_task(base_time, task_id="task-1"))

        assert created.id == "task-1"

    @pytest.mark.asyncio
    async def test_create_rejects_invalid_task(self, store, base_time):
        task = make_task(base_time, end=base_time)

        with pytest.raises(InvalidTaskError, match="end time must be after start time"):
            await store.create(task)

        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_duplicate_id(self, store, base_time):
        await store.create(make_task(base_time, task_id="task-1"))

        with pytest.raises(DuplicateTaskError):
            await store.create(make_task(base_time + hours(5), task_id="task-1"))

        assert await store.count() == 1

    @pytest.mark.asyncio
    async def test_overlap_scenario(self, store, base_time):
        """09:00-10:00 blocks 09:30-10:30 but not 10:00-11:00."""
        first = await store.create(make_task(base_time, task_id="a"))

        with pytest.raises(TaskOverlapError) as exc_info:
            await store.create(make_task(base_time + hours(0.5), task_id="b"))
        assert exc_info.value.conflicting_ids == [first.id]
        assert str(exc_info.value) == "task overlaps with existing task"

        await store.create(make_task(base_time + hours(1), task_id="c"))

        tasks = await store.list("test-user")
        assert [t.id for t in tasks] == ["a", "c"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "offset,length",
        [
            (0.5, 1),    # starts during
            (-0.5, 1),   # ends during
            (-0.5, 2),   # contains
            (0.25, 0.5), # contained
            (0, 1),      # identical
        ],
    )
    async def test_overlap_shapes_rejected(self, store, base_time, offset, length):
        await store.create(make_task(base_time))

        with pytest.raises(TaskOverlapError):
            await store.create(make_task(base_time + hours(offset), hours=length))

    @pytest.mark.asyncio
    async def test_adjacent_tasks_allowed(self, store, base_time):
        await store.create(make_task(base_time))
        await store.create(make_task(base_time + hours(1)))
        await store.create(make_task(base_time - hours(1)))

        assert await store.count() == 3

    @pytest.mark.asyncio
    async def test_overlap_is_per_user(self, store, base_time):
        await store.create(make_task(base_time, user_id="alice"))
        await store.create(make_task(base_time, user_id="bob"))

        assert len(await store.list("alice")) == 1
        assert len(await store.list("bob")) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["deleted", "replaced"])
    async def test_inert_tasks_do_not_block(self, store, base_time, status):
        await store.create(make_task(base_time, status=status))
        # an inert candidate is not checked either
        await store.create(make_task(base_time, status=status))

        await store.create(make_task(base_time))

        with pytest.raises(TaskOverlapError):
            await store.create(make_task(base_time))


@pytest.mark.integration
class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_overlapping_creates_admit_one(self, store, base_time):
        attempts = 8
        results = await asyncio.gather(
            *(store.create(make_task(base_time, task_id=f"race-{i}")) for i in range(attempts)),
            return_exceptions=True,
        )

        created = [r for r in results if isinstance(r, Task)]
        rejected = [r for r in results if isinstance(r, TaskOverlapError)]
        assert len(created) == 1
        assert len(rejected) == attempts - 1

        stored = await store.list("test-user")
        assert [t.id for t in stored] == [created[0].id]

    @pytest.mark.asyncio
    async def test_concurrent_disjoint_creates_all_succeed(self, store, base_time):
        results = await asyncio.gather(
            *(store.create(make_task(base_time + hours(i))) for i in range(6))
        )

        assert len(results) == 6
        stored = await store.list("test-user")
        assert [t.start for t in stored] == [base_time + hours(i) for i in range(6)]

    @pytest.mark.asyncio
    async def test_concurrent_updates_into_same_slot_admit_one(self, store, base_time):
        first = await store.create(make_task(base_time, task_id="first"))
        second = await store.create(make_task(base_time + hours(2), task_id="second"))
        target = base_time + hours(5)

        results = await asyncio.gather(
            store.update(first.model_copy(update={"start": target, "end": target + hours(1)})),
            store.update(second.model_copy(update={"start": target, "end": target + hours(1)})),
            return_exceptions=True,
        )

        assert sum(isinstance(r, Task) for r in results) == 1
        assert sum(isinstance(r, TaskOverlapError) for r in results) == 1
        assert len(await store.find_overlapping("test-user", target, target + hours(1))) == 1


@pytest.mark.integration
class TestUpdate:
    @pytest.mark.asyncio
    async def test_update_replaces_fields(self, store, base_time):
        created = await store.create(make_task(base_time, title="Before"))
        changed = created.model_copy(update={"title": "After", "start": base_time + hours(2), "end": base_time + hours(3)})

        updated = await store.update(changed)

        assert updated == changed
        assert await store.get(created.id) == changed

    @pytest.mark.asyncio
    async def test_update_within_own_interval(self, store, base_time):
        created = await store.create(make_task(base_time, hours=2))

        await store.update(created.model_copy(update={"start": base_time + hours(0.5)}))

        assert (await store.get(created.id)).start == base_time + hours(0.5)

    @pytest.mark.asyncio
    async def test_update_is_idempotent(self, store, base_time):
        created = await store.create(make_task(base_time))

        await store.update(created)
        await store.update(created)

        assert await store.get(created.id) == created

    @pytest.mark.asyncio
    async def test_update_into_other_task_rejected(self, store, base_time):
        await store.create(make_task(base_time, task_id="a"))
        moving = await store.create(make_task(base_time + hours(3), task_id="b"))

        with pytest.raises(TaskOverlapError) as exc_info:
            await store.update(moving.model_copy(update={"start": base_time + hours(0.5), "end": base_time + hours(1.5)}))

        assert exc_info.value.conflicting_ids == ["a"]
        assert (await store.get("b")).start == base_time + hours(3)

    @pytest.mark.asyncio
    async def test_update_status_frees_interval(self, store, base_time):
        created = await store.create(make_task(base_time))

        await store.update(created.model_copy(update={"status": TaskStatus.DELETED.value}))

        await store.create(make_task(base_time))
        assert len(await store.find_overlapping("test-user", base_time, base_time + hours(1))) == 1

    @pytest.mark.asyncio
    async def test_update_missing_task(self, store, base_time):
        with pytest.raises(NotFoundError):
            await store.update(make_task(base_time, task_id="missing"))

    @pytest.mark.asyncio
    async def test_update_without_id(self, store, base_time):
        with pytest.raises(NotFoundError):
            await store.update(make_task(base_time))

    @pytest.mark.asyncio
    async def test_update_validates_first(self, store, base_time):
        created = await store.create(make_task(base_time))

        with pytest.raises(InvalidTaskError, match="invalid status"):
            await store.update(created.model_copy(update={"status": "archived"}))


@pytest.mark.integration
class TestDeleteAndRead:
    @pytest.mark.asyncio
    async def test_delete_frees_interval_and_id(self, store, base_time):
        created = await store.create(make_task(base_time, task_id="task-1"))

        await store.delete(created.id)

        with pytest.raises(NotFoundError):
            await store.get("task-1")
        await store.create(make_task(base_time, task_id="task-1"))

    @pytest.mark.asyncio
    async def test_delete_missing_task(self, store):
        with pytest.raises(NotFoundError) as exc_info:
            await store.delete("missing")

        assert exc_info.value.task_id == "missing"

    @pytest.mark.asyncio
    async def test_get_missing_task(self, store):
        with pytest.raises(NotFoundError, match="task not found"):
            await store.get("missing")

    @pytest.mark.asyncio
    async def test_list_empty(self, store):
        assert await store.list("nobody") == []

    @pytest.mark.asyncio
    async def test_list_ordered_by_start_with_every_status(self, store, base_time):
        await store.create(make_task(base_time + hours(4), task_id="late"))
        await store.create(make_task(base_time, task_id="early", status="replaced"))
        await store.create(make_task(base_time + hours(2), task_id="middle"))
        await store.create(make_task(base_time, task_id="other", user_id="someone-else"))

        tasks = await store.list("test-user")

        assert [t.id for t in tasks] == ["early", "middle", "late"]

    @pytest.mark.asyncio
    async def test_find_overlapping(self, store, base_time):
        await store.create(make_task(base_time, task_id="a"))
        await store.create(make_task(base_time + hours(2), task_id="b"))
        await store.create(make_task(base_time + hours(1), task_id="inert", status="deleted"))

        found = await store.find_overlapping("test-user", base_time + hours(0.5), base_time + hours(2.5))
        assert [t.id for t in found] == ["a", "b"]

        found = await store.find_overlapping(
            "test-user", base_time + hours(0.5), base_time + hours(2.5), exclude_id="a"
        )
        assert [t.id for t in found] == ["b"]

        assert await store.find_overlapping("test-user", base_time + hours(1), base_time + hours(2)) == []


@pytest.mark.integration
class TestStorageFailures:
    @pytest.mark.asyncio
    async def test_timeout_surfaces_as_storage_error(self, store, monkeypatch):
        async def slow_get(task_id):
            await asyncio.sleep(5)

        monkeypatch.setattr(store, "_get", slow_get)

        with pytest.raises(StorageError, match="timed out"):
            await store.get("task-1", timeout=0.05)

    @pytest.mark.asyncio
    async def test_database_error_surfaces_as_storage_error(self, engine, base_time):
        store = TaskStore(engine)
        await migrate_down(engine)

        with pytest.raises(StorageError) as exc_info:
            await store.create(make_task(base_time))

        assert exc_info.value.__cause__ is not None

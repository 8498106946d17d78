"""SQLAlchemy-backed, overlap-safe task store"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Awaitable, List, Optional, TypeVar
from uuid import uuid4

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

# SQLAlchemy ORM models
from vesper.db.models.task import TaskRecord
from vesper.db.session import SQLITE_BEGIN_OPTION, create_session_factory

# Pydantic domain models (feature-local)
from vesper.features.tasks.domain import Task, TaskStatus
from vesper.features.tasks.errors import (
    DuplicateTaskError,
    NotFoundError,
    StorageError,
    TaskOverlapError,
)
from vesper.features.tasks.validation import validate_task

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TaskStore:
    """
    Persistence for tasks with the non-overlap invariant enforced on write.

    Create and update run "look for a conflicting scheduled task, then
    write" inside a single transaction that first takes a lock on the
    scheduling scope (the owning user), so two concurrent writers can never
    both pass the check:

    - SQLite: the transaction starts with BEGIN IMMEDIATE (database write lock)
    - PostgreSQL: pg_advisory_xact_lock keyed by the user id

    Every public call is bounded by a timeout; SQLAlchemy failures and
    timeouts surface as StorageError, domain failures as TaskError subclasses.
    """

    def __init__(self, engine: AsyncEngine, default_timeout: Optional[float] = None):
        """
        Initialize the store with an engine.

        Args:
            engine: SQLAlchemy async engine, owned by the caller that built it
            default_timeout: Seconds applied to calls that pass no timeout
                (None means unbounded)
        """
        self._engine = engine
        self._session_factory = create_session_factory(engine)
        self._default_timeout = default_timeout

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def close(self) -> None:
        """Release every pooled connection"""
        await self._engine.dispose()
        logger.info("Task store closed")

    # ---- public API ----

    async def create(self, task: Task, timeout: Optional[float] = None) -> Task:
        """
        Validate and insert a task.

        Returns:
            The stored task (with its assigned id)

        Raises:
            InvalidTaskError: Task is structurally invalid
            DuplicateTaskError: A task with the same id exists
            TaskOverlapError: A scheduled task of the same user intersects it
            StorageError: Database failure or timeout
        """
        return await self._run("create", self._create(task), timeout)

    async def update(self, task: Task, timeout: Optional[float] = None) -> Task:
        """
        Replace the stored fields of the task identified by `task.id`.

        The overlap check ignores the task's own row, so a task may be moved
        within (or keep) its current interval.

        Raises:
            InvalidTaskError, NotFoundError, TaskOverlapError, StorageError
        """
        return await self._run("update", self._update(task), timeout)

    async def delete(self, task_id: str, timeout: Optional[float] = None) -> None:
        """Permanently remove a task. Raises NotFoundError if no row matched."""
        await self._run("delete", self._delete(task_id), timeout)

    async def get(self, task_id: str, timeout: Optional[float] = None) -> Task:
        """Fetch one task. Raises NotFoundError if it does not exist."""
        return await self._run("get", self._get(task_id), timeout)

    async def list(self, user_id: str, timeout: Optional[float] = None) -> List[Task]:
        """All tasks owned by the user (every status), ordered by start time"""
        return await self._run("list", self._list(user_id), timeout)

    async def find_overlapping(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
        exclude_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> List[Task]:
        """Scheduled tasks of the user intersecting [start, end), read-only"""
        return await self._run(
            "find_overlapping",
            self._find_overlapping(user_id, start, end, exclude_id),
            timeout,
        )

    async def count(self, timeout: Optional[float] = None) -> int:
        """Total number of stored tasks"""
        return await self._run("count", self._count(), timeout)

    # ---- unit of work ----

    @asynccontextmanager
    async def _unit_of_work(self, scope_key: str) -> AsyncIterator[AsyncSession]:
        """
        Transaction holding the scope lock for its whole lifetime.

        Commits when the block exits normally, rolls back on any exception
        (including cancellation) and re-raises it.
        """
        async with self._session_factory() as session:
            async with session.begin():
                await self._lock_scope(session, scope_key)
                yield session

    async def _lock_scope(self, session: AsyncSession, scope_key: str) -> None:
        dialect = self._engine.dialect.name
        if dialect == "sqlite":
            # BEGIN IMMEDIATE is emitted when the connection is procured
            await session.connection(execution_options={SQLITE_BEGIN_OPTION: "IMMEDIATE"})
        elif dialect == "postgresql":
            await session.execute(select(func.pg_advisory_xact_lock(func.hashtext(scope_key))))
        else:
            raise StorageError(f"Unsupported database dialect for task store: {dialect}")

    async def _run(self, operation: str, coro: Awaitable[T], timeout: Optional[float]) -> T:
        limit = self._default_timeout if timeout is None else timeout
        try:
            if limit is None:
                return await coro
            return await asyncio.wait_for(coro, timeout=limit)
        except asyncio.TimeoutError as e:
            logger.warning(f"Task store {operation} timed out after {limit}s")
            raise StorageError(f"task store {operation} timed out after {limit}s") from e
        except SQLAlchemyError as e:
            logger.error(f"Task store {operation} failed: {e}")
            raise StorageError(f"task store {operation} failed") from e

    # ---- operations ----

    async def _create(self, task: Task) -> Task:
        validate_task(task)
        record = self._to_record(task, task.id or uuid4().hex)

        try:
            async with self._unit_of_work(record.user_id) as session:
                if await session.get(TaskRecord, record.id) is not None:
                    raise DuplicateTaskError(record.id)

                if task.is_active():
                    conflicts = await self._select_conflicts(
                        session, record.user_id, record.start, record.end
                    )
                    if conflicts:
                        raise TaskOverlapError([c.id for c in conflicts])

                session.add(record)
                await session.flush()
        except IntegrityError as e:
            # Primary key race with a writer outside this user's lock scope
            raise DuplicateTaskError(record.id) from e
        except TaskOverlapError as e:
            logger.info(
                f"Rejected overlapping task user={record.user_id} "
                f"start={record.start.isoformat()} end={record.end.isoformat()} "
                f"conflicts={e.conflicting_ids}"
            )
            raise

        logger.info(f"Task created id={record.id} user={record.user_id} status={record.status}")
        return self._to_domain(record)

    async def _update(self, task: Task) -> Task:
        validate_task(task)
        if not task.id:
            raise NotFoundError("")

        async with self._unit_of_work(task.user_id) as session:
            if await session.get(TaskRecord, task.id) is None:
                raise NotFoundError(task.id)

            if task.is_active():
                conflicts = await self._select_conflicts(
                    session, task.user_id, task.start, task.end, exclude_id=task.id
                )
                if conflicts:
                    raise TaskOverlapError([c.id for c in conflicts])

            stmt = (
                update(TaskRecord)
                .where(TaskRecord.id == task.id)
                .values(
                    title=task.title,
                    start=task.start,
                    end=task.end,
                    status=task.status,
                    user_id=task.user_id,
                )
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)
            if result.rowcount == 0:
                raise NotFoundError(task.id)

        logger.info(f"Task updated id={task.id} user={task.user_id} status={task.status}")
        return task.model_copy()

    async def _delete(self, task_id: str) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(delete(TaskRecord).where(TaskRecord.id == task_id))
                if result.rowcount == 0:
                    raise NotFoundError(task_id)
        logger.info(f"Task deleted id={task_id}")

    async def _get(self, task_id: str) -> Task:
        async with self._session_factory() as session:
            record = await session.get(TaskRecord, task_id)
            if record is None:
                raise NotFoundError(task_id)
            return self._to_domain(record)

    async def _list(self, user_id: str) -> List[Task]:
        async with self._session_factory() as session:
            stmt = (
                select(TaskRecord)
                .where(TaskRecord.user_id == user_id)
                .order_by(TaskRecord.start.asc(), TaskRecord.id.asc())
            )
            result = await session.execute(stmt)
            return [self._to_domain(r) for r in result.scalars().all()]

    async def _find_overlapping(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
        exclude_id: Optional[str],
    ) -> List[Task]:
        async with self._session_factory() as session:
            records = await self._select_conflicts(session, user_id, start, end, exclude_id)
            return [self._to_domain(r) for r in records]

    async def _count(self) -> int:
        async with self._session_factory() as session:
            result = await session.execute(select(func.count()).select_from(TaskRecord))
            return int(result.scalar_one())

    # ---- helpers ----

    @staticmethod
    async def _select_conflicts(
        session: AsyncSession,
        user_id: str,
        start: datetime,
        end: datetime,
        exclude_id: Optional[str] = None,
    ) -> List[TaskRecord]:
        """
        Scheduled rows of the user whose interval intersects [start, end).

        existing.start < end AND existing.end > start: rows that only touch
        the candidate at an endpoint are not returned.
        """
        stmt = select(TaskRecord).where(
            TaskRecord.user_id == user_id,
            TaskRecord.status == TaskStatus.SCHEDULED.value,
            TaskRecord.start < end,
            TaskRecord.end > start,
        )
        if exclude_id is not None:
            stmt = stmt.where(TaskRecord.id != exclude_id)
        result = await session.execute(stmt.order_by(TaskRecord.start.asc()))
        return list(result.scalars().all())

    @staticmethod
    def _to_record(task: Task, task_id: str) -> TaskRecord:
        return TaskRecord(
            id=task_id,
            title=task.title,
            start=task.start,
            end=task.end,
            status=task.status,
            user_id=task.user_id,
        )

    @staticmethod
    def _to_domain(record: TaskRecord) -> Task:
        return Task.model_validate(record)

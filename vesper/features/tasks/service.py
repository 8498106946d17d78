"""Business logic for tasks"""

import logging
from typing import List, Optional

from vesper.features.tasks.domain import Task, TaskStatus
from vesper.features.tasks.errors import NotFoundError
from vesper.features.tasks.repository import TaskStore

logger = logging.getLogger(__name__)


class TaskService:
    """
    Service layer between callers and the task store.

    Business rules:
    - A new task without a status becomes "scheduled"
    - When the caller identifies itself (`user_id`), it only sees and
      changes its own tasks; other users' tasks answer as not found
    """

    def __init__(self, store: TaskStore):
        self.store = store

    async def list_tasks(self, user_id: str) -> List[Task]:
        return await self.store.list(user_id)

    async def get_task(self, task_id: str, user_id: Optional[str] = None) -> Task:
        """
        Raises:
            NotFoundError: Missing, or owned by another user
        """
        task = await self.store.get(task_id)
        if user_id and task.user_id != user_id:
            raise NotFoundError(task_id)
        return task

    async def create_task(self, task: Task, user_id: Optional[str] = None) -> Task:
        """
        Create a task on behalf of a caller.

        Args:
            task: Candidate task (id optional)
            user_id: Caller identity; overrides the task's own user_id

        Returns:
            The stored task
        """
        updates = {}
        if user_id:
            updates["user_id"] = user_id
        if not task.status:
            updates["status"] = TaskStatus.SCHEDULED.value
        candidate = task.model_copy(update=updates) if updates else task

        return await self.store.create(candidate)

    async def update_task(self, task_id: str, task: Task, user_id: Optional[str] = None) -> Task:
        """
        Replace a task's fields. The id always comes from `task_id`.

        A caller may only update its own task, and the task stays with that
        caller.
        """
        updates = {"id": task_id}
        if user_id:
            await self.get_task(task_id, user_id)
            updates["user_id"] = user_id

        return await self.store.update(task.model_copy(update=updates))

    async def delete_task(self, task_id: str, user_id: Optional[str] = None) -> None:
        if user_id:
            await self.get_task(task_id, user_id)
        await self.store.delete(task_id)

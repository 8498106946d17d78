"""Tasks feature module"""

from vesper.features.tasks.api import router
from vesper.features.tasks.repository import TaskStore
from vesper.features.tasks.service import TaskService
from vesper.features.tasks.validation import validate_task
from vesper.features.tasks.domain import Task, TaskStatus, is_overlapping
from vesper.features.tasks.errors import (
    DuplicateTaskError,
    ErrorKind,
    InvalidReason,
    InvalidTaskError,
    NotFoundError,
    StorageError,
    TaskError,
    TaskOverlapError,
    UnauthorizedError,
    VesperError,
)

__all__ = [
    "router",
    "TaskStore",
    "TaskService",
    "validate_task",
    "Task",
    "TaskStatus",
    "is_overlapping",
    "DuplicateTaskError",
    "ErrorKind",
    "InvalidReason",
    "InvalidTaskError",
    "NotFoundError",
    "StorageError",
    "TaskError",
    "TaskOverlapError",
    "UnauthorizedError",
    "VesperError",
]

"""Error taxonomy for the task store"""

from enum import Enum


class VesperError(Exception):
    """Base exception for the vesper backend."""
    pass


class ErrorKind(str, Enum):
    """Closed set of domain failure kinds a task operation can report"""
    NOT_FOUND = "not_found"
    TASK_OVERLAP = "task_overlap"
    INVALID = "invalid"
    # Id collision on insert
    DUPLICATE = "duplicate"
    # Cross-user access; reserved, the current flows answer with NOT_FOUND
    UNAUTHORIZED = "unauthorized"


class InvalidReason(str, Enum):
    """Which structural rule an invalid task broke"""
    MISSING_FIELD = "missing_field"
    INVALID_INTERVAL = "invalid_interval"
    INVALID_STATUS = "invalid_status"


class TaskError(VesperError):
    """Domain failure of a task operation, tagged with its kind."""
    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(TaskError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, task_id: str):
        super().__init__("task not found")
        self.task_id = task_id


class TaskOverlapError(TaskError):
    """Create/update would make two scheduled tasks of a user overlap."""
    kind = ErrorKind.TASK_OVERLAP

    def __init__(self, conflicting_ids: list[str]):
        super().__init__("task overlaps with existing task")
        self.conflicting_ids = conflicting_ids


class InvalidTaskError(TaskError):
    kind = ErrorKind.INVALID

    def __init__(self, reason: InvalidReason, message: str):
        super().__init__(message)
        self.reason = reason


class DuplicateTaskError(TaskError):
    kind = ErrorKind.DUPLICATE

    def __init__(self, task_id: str):
        super().__init__("task already exists")
        self.task_id = task_id


class UnauthorizedError(TaskError):
    kind = ErrorKind.UNAUTHORIZED

    def __init__(self, message: str = "unauthorized"):
        super().__init__(message)


class StorageError(VesperError):
    """
    Infrastructure failure below the store (connection loss, disk error,
    timeout). Not a domain kind; the underlying exception is chained as
    __cause__ and the caller decides on retries.
    """
    pass

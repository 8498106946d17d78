"""Structural validation of candidate tasks"""

from vesper.features.tasks.domain import Task, TaskStatus, is_unset_time
from vesper.features.tasks.errors import InvalidReason, InvalidTaskError


def _is_blank(value) -> bool:
    return value is None or not str(value).strip()


def validate_task(task: Task) -> None:
    """
    Reject a task that cannot be stored.

    Checks run in a fixed order and the first failure is raised:
    title, user_id, start, end, interval ordering, status.

    A start or end equal to the zero instant (0001-01-01T00:00:00Z) counts
    as missing.

    A missing status is reported as invalid; defaulting it to "scheduled"
    is the caller's responsibility.

    Raises:
        InvalidTaskError: With the broken rule as `reason`
    """
    if _is_blank(task.title):
        raise InvalidTaskError(InvalidReason.MISSING_FIELD, "title is required")
    if _is_blank(task.user_id):
        raise InvalidTaskError(InvalidReason.MISSING_FIELD, "user_id is required")
    if is_unset_time(task.start):
        raise InvalidTaskError(InvalidReason.MISSING_FIELD, "start time is required")
    if is_unset_time(task.end):
        raise InvalidTaskError(InvalidReason.MISSING_FIELD, "end time is required")
    if task.end <= task.start:
        raise InvalidTaskError(InvalidReason.INVALID_INTERVAL, "end time must be after start time")
    if not TaskStatus.is_valid(task.status):
        raise InvalidTaskError(InvalidReason.INVALID_STATUS, "invalid status")

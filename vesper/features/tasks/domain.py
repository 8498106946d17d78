"""Domain models for the tasks feature"""

from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, field_validator


class TaskStatus(str, Enum):
    """Task status enum"""
    SCHEDULED = "scheduled"
    DELETED = "deleted"
    REPLACED = "replaced"

    @classmethod
    def is_valid(cls, value: Optional[str]) -> bool:
        """Case-sensitive membership check; empty is not a status"""
        return value in tuple(status.value for status in cls)


# Only these statuses block an interval
ACTIVE_STATUSES = (TaskStatus.SCHEDULED.value,)


# Earliest representable instant; a timestamp equal to it counts as unset
ZERO_TIME = datetime.min.replace(tzinfo=timezone.utc)


def to_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to aware UTC; naive values are taken as UTC.

    Raises:
        ValueError: The instant falls outside the datetime range once
            shifted to UTC (e.g. 0001-01-01T00:00:00+01:00)
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    try:
        return value.astimezone(timezone.utc)
    except OverflowError as e:
        raise ValueError("timestamp out of range") from e


def is_unset_time(value: Optional[datetime]) -> bool:
    """Whether a timestamp is missing or the zero instant"""
    return value is None or value == ZERO_TIME


def intervals_overlap(
    a_start: datetime,
    a_end: datetime,
    b_start: datetime,
    b_end: datetime,
) -> bool:
    """Half-open [start, end) intersection; touching endpoints do not overlap"""
    return a_start < b_end and b_start < a_end


class Task(BaseModel):
    """
    A time-bounded task owned by a user.

    Fields are optional so that a structurally broken candidate can still be
    built and reported by validation; the store only ever returns complete
    tasks. `status` is kept as a plain string for the same reason, and since
    TaskStatus is a str enum comparisons against either form work.
    """
    id: Optional[str] = None
    title: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    user_id: Optional[str] = None
    status: Optional[str] = None

    class Config:
        from_attributes = True

    @field_validator("start", "end")
    @classmethod
    def normalize_timestamp(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_utc(value)

    @field_validator("status", mode="before")
    @classmethod
    def status_value(cls, value):
        if isinstance(value, TaskStatus):
            return value.value
        return value

    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def overlaps(self, other: "Task") -> bool:
        """Whether both tasks are complete and their intervals intersect"""
        if None in (self.start, self.end, other.start, other.end):
            return False
        return intervals_overlap(self.start, self.end, other.start, other.end)


def is_overlapping(candidate: Task, existing: Iterable[Task]) -> bool:
    """
    Check a candidate against a set of tasks.

    Inert tasks (deleted / replaced) are skipped; a task is never compared
    with itself when both carry the same id.
    """
    for task in existing:
        if not task.is_active():
            continue  # skip inactive blocks
        if candidate.id is not None and task.id == candidate.id:
            continue
        if candidate.overlaps(task):
            return True
    return False

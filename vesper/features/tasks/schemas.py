"""Request and response schemas for the Tasks API"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, field_validator

from vesper.features.tasks.domain import Task, to_utc


class TaskRequest(BaseModel):
    """
    Body of create and update requests.

    Every field is optional here; missing or malformed values are reported
    by task validation with its own messages instead of a schema error.
    Timestamps that cannot be expressed in UTC are the exception: they fail
    here, as an unprocessable body.
    """
    id: Optional[str] = None
    title: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    user_id: Optional[str] = None
    status: Optional[str] = None

    @field_validator("start", "end")
    @classmethod
    def normalize_timestamp(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_utc(value)

    def to_task(self) -> Task:
        return Task(**self.model_dump())


class TaskListResponse(BaseModel):
    """Response model for listing a user's tasks"""
    tasks: List[Task]
    count: int


class ErrorResponse(BaseModel):
    """Body of the error answers raised by task operations"""
    detail: str

"""Tests for task validation."""

from datetime import datetime, timedelta, timezone

import pytest

from vesper.features.tasks.domain import Task
from vesper.features.tasks.errors import ErrorKind, InvalidReason, InvalidTaskError
from vesper.features.tasks.validation import validate_task


def _valid_fields(base_time) -> dict:
    return {
        "id": "test-001",
        "title": "Test",
        "start": base_time,
        "end": base_time + timedelta(hours=1),
        "user_id": "test-user",
        "status": "scheduled",
    }


@pytest.mark.unit
@pytest.mark.parametrize("status", ["scheduled", "deleted", "replaced"])
def test_valid_task_passes(base_time, status):
    fields = _valid_fields(base_time)
    fields["status"] = status

    assert validate_task(Task(**fields)) is None


@pytest.mark.unit
@pytest.mark.parametrize(
    "overrides,reason,message",
    [
        ({"title": ""}, InvalidReason.MISSING_FIELD, "title is required"),
        ({"title": "   "}, InvalidReason.MISSING_FIELD, "title is required"),
        ({"title": None}, InvalidReason.MISSING_FIELD, "title is required"),
        ({"user_id": ""}, InvalidReason.MISSING_FIELD, "user_id is required"),
        ({"user_id": None}, InvalidReason.MISSING_FIELD, "user_id is required"),
        ({"start": None}, InvalidReason.MISSING_FIELD, "start time is required"),
        ({"end": None}, InvalidReason.MISSING_FIELD, "end time is required"),
        ({"status": "bogus"}, InvalidReason.INVALID_STATUS, "invalid status"),
        ({"status": "SCHEDULED"}, InvalidReason.INVALID_STATUS, "invalid status"),
        ({"status": ""}, InvalidReason.INVALID_STATUS, "invalid status"),
        ({"status": None}, InvalidReason.INVALID_STATUS, "invalid status"),
    ],
)
def test_invalid_task_rejected(base_time, overrides, reason, message):
    fields = _valid_fields(base_time)
    fields.update(overrides)

    with pytest.raises(InvalidTaskError) as exc_info:
        validate_task(Task(**fields))

    assert exc_info.value.kind == ErrorKind.INVALID
    assert exc_info.value.reason == reason
    assert str(exc_info.value) == message


@pytest.mark.unit
@pytest.mark.parametrize("end_offset", [timedelta(0), timedelta(hours=-1)])
def test_end_must_be_after_start(base_time, end_offset):
    fields = _valid_fields(base_time)
    fields["end"] = base_time + end_offset

    with pytest.raises(InvalidTaskError) as exc_info:
        validate_task(Task(**fields))

    assert exc_info.value.reason == InvalidReason.INVALID_INTERVAL
    assert exc_info.value.message == "end time must be after start time"


@pytest.mark.unit
def test_first_failure_wins(base_time):
    """Title is checked before anything else."""
    task = Task(title="", user_id="", start=base_time, end=base_time, status="bogus")

    with pytest.raises(InvalidTaskError, match="title is required"):
        validate_task(task)


@pytest.mark.unit
def test_validation_does_not_modify_task(base_time):
    task = Task(**{**_valid_fields(base_time), "status": None})
    before = task.model_dump()

    with pytest.raises(InvalidTaskError):
        validate_task(task)

    assert task.model_dump() == before


@pytest.mark.unit
@pytest.mark.parametrize(
    "field,message",
    [("start", "start time is required"), ("end", "end time is required")],
)
def test_zero_time_counts_as_missing(base_time, field, message):
    fields = _valid_fields(base_time)
    fields[field] = datetime(1, 1, 1, tzinfo=timezone.utc)

    with pytest.raises(InvalidTaskError) as exc_info:
        validate_task(Task(**fields))

    assert exc_info.value.reason == InvalidReason.MISSING_FIELD
    assert exc_info.value.message == message

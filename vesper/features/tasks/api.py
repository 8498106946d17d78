"""Tasks API endpoints"""

import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from vesper.features.tasks.domain import Task
from vesper.features.tasks.errors import ErrorKind, StorageError, TaskError
from vesper.features.tasks.repository import TaskStore
from vesper.features.tasks.schemas import ErrorResponse, TaskListResponse, TaskRequest
from vesper.features.tasks.service import TaskService
from vesper.middleware.auth import get_current_user_id, get_optional_user_id

logger = logging.getLogger(__name__)


router = APIRouter(prefix="/api/tasks", tags=["tasks"])


ERROR_STATUS_CODES: Dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.TASK_OVERLAP: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID: status.HTTP_400_BAD_REQUEST,
    ErrorKind.DUPLICATE: status.HTTP_409_CONFLICT,
    ErrorKind.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
}

# OpenAPI documentation of the error bodies each route can answer with
STORAGE_RESPONSES = {status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse}}
READ_RESPONSES = {status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}, **STORAGE_RESPONSES}
WRITE_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    status.HTTP_409_CONFLICT: {"model": ErrorResponse},
    **STORAGE_RESPONSES,
}

_unmapped = set(ErrorKind) - set(ERROR_STATUS_CODES)
if _unmapped:
    raise RuntimeError(f"Error kinds without an HTTP status: {sorted(k.value for k in _unmapped)}")


def to_http_exception(error: Exception) -> HTTPException:
    """Translate a store failure into the HTTP error returned to the client"""
    if isinstance(error, TaskError):
        return HTTPException(status_code=ERROR_STATUS_CODES[error.kind], detail=error.message)
    if isinstance(error, StorageError):
        logger.error(f"Storage failure: {error}", exc_info=error)
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="storage unavailable")
    raise TypeError(f"Not a task store error: {type(error).__name__}")


def get_task_store(request: Request) -> TaskStore:
    """The store built at application start-up"""
    return request.app.state.task_store


def get_task_service(store: TaskStore = Depends(get_task_store)) -> TaskService:
    return TaskService(store)


@router.get("", response_model=TaskListResponse, responses=STORAGE_RESPONSES)
async def list_tasks(
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    """List all tasks of the calling user"""
    try:
        tasks = await service.list_tasks(user_id)
    except (TaskError, StorageError) as e:
        raise to_http_exception(e)

    return {"tasks": tasks, "count": len(tasks)}


@router.get("/{task_id}", response_model=Task, responses=READ_RESPONSES)
async def get_task(
    task_id: str,
    user_id: Optional[str] = Depends(get_optional_user_id),
    service: TaskService = Depends(get_task_service),
):
    """Get a single task by ID"""
    try:
        return await service.get_task(task_id, user_id)
    except (TaskError, StorageError) as e:
        raise to_http_exception(e)


@router.post("", response_model=Task, status_code=status.HTTP_201_CREATED, responses=WRITE_RESPONSES)
async def create_task(
    request: TaskRequest,
    user_id: Optional[str] = Depends(get_optional_user_id),
    service: TaskService = Depends(get_task_service),
):
    """
    Create a new task.

    The status defaults to "scheduled". When X-User-ID is sent it replaces
    the body's user_id.

    Raises:
        400: Validation failure
        409: Overlaps another scheduled task of the user, or id already taken
    """
    try:
        return await service.create_task(request.to_task(), user_id)
    except (TaskError, StorageError) as e:
        raise to_http_exception(e)


@router.put("/{task_id}", response_model=Task, responses=WRITE_RESPONSES)
async def update_task(
    task_id: str,
    request: TaskRequest,
    user_id: Optional[str] = Depends(get_optional_user_id),
    service: TaskService = Depends(get_task_service),
):
    """
    Replace an existing task. The id is taken from the path.

    Raises:
        400: Validation failure
        404: Task not found
        409: New interval overlaps another scheduled task
    """
    try:
        return await service.update_task(task_id, request.to_task(), user_id)
    except (TaskError, StorageError) as e:
        raise to_http_exception(e)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT, responses=READ_RESPONSES)
async def delete_task(
    task_id: str,
    user_id: Optional[str] = Depends(get_optional_user_id),
    service: TaskService = Depends(get_task_service),
):
    """Delete a task permanently"""
    try:
        await service.delete_task(task_id, user_id)
    except (TaskError, StorageError) as e:
        raise to_http_exception(e)

    return Response(status_code=status.HTTP_204_NO_CONTENT)

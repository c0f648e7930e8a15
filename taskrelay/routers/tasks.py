# taskrelay/routers/tasks.py
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from taskrelay.database import get_db
from taskrelay.schemas.task import TaskAssign, TaskCreate, TaskList, TaskOut, TaskStatusUpdate, TaskUpdate, TaskWithAssigner
from taskrelay.schemas.user import CurrentUser
from taskrelay.services.task_service import TaskStateMachine
from taskrelay.services.task_store import TaskStore
from taskrelay.utils.auth import get_current_user
from taskrelay.utils.errors import PermissionDeniedError, TaskNotFoundError, TaskServiceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["Tasks"])


def get_task_state_machine(request: Request, db: Session = Depends(get_db)) -> TaskStateMachine:
    """State machine bound to this request's session and the app's notification router"""
    return TaskStateMachine(TaskStore(db), request.app.state.notification_router)


def to_http_error(error: TaskServiceError) -> HTTPException:
    if isinstance(error, TaskNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=error.message)
    if isinstance(error, PermissionDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=error.message)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error.message)


@router.post("/", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
async def create_task(
    task: TaskCreate,
    machine: TaskStateMachine = Depends(get_task_state_machine),
    current_user: CurrentUser = Depends(get_current_user)
):
    try:
        return await machine.create_task(current_user, task)
    except TaskServiceError as e:
        raise to_http_error(e)


@router.get("/", response_model=TaskList)
def list_tasks(
    machine: TaskStateMachine = Depends(get_task_state_machine),
    current_user: CurrentUser = Depends(get_current_user)
):
    """List tasks visible to the current user

    - manager: every task
    - employee: only tasks assigned to them
    """
    tasks = machine.list_tasks(current_user)
    return {"total": len(tasks), "tasks": tasks}


@router.get("/user/{user_id}", response_model=List[TaskWithAssigner])
def list_tasks_created_by(
    user_id: str,
    machine: TaskStateMachine = Depends(get_task_state_machine),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Tasks created by a given user"""
    return machine.list_tasks_created_by(user_id)


@router.get("/{task_id}", response_model=TaskOut)
def get_task(
    task_id: str,
    machine: TaskStateMachine = Depends(get_task_state_machine),
    current_user: CurrentUser = Depends(get_current_user)
):
    try:
        return machine.get_task(task_id)
    except TaskServiceError as e:
        raise to_http_error(e)


@router.put("/{task_id}", response_model=TaskOut)
async def update_task(
    task_id: str,
    task_update: TaskUpdate,
    machine: TaskStateMachine = Depends(get_task_state_machine),
    current_user: CurrentUser = Depends(get_current_user)
):
    try:
        return await machine.update_task(current_user, task_id, task_update)
    except TaskServiceError as e:
        raise to_http_error(e)


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    machine: TaskStateMachine = Depends(get_task_state_machine),
    current_user: CurrentUser = Depends(get_current_user)
):
    try:
        await machine.delete_task(current_user, task_id)
    except TaskServiceError as e:
        raise to_http_error(e)
    return {"message": "Task deleted successfully"}


@router.patch("/{task_id}/status", response_model=TaskOut)
async def update_task_status(
    task_id: str,
    status_update: TaskStatusUpdate,
    machine: TaskStateMachine = Depends(get_task_state_machine),
    current_user: CurrentUser = Depends(get_current_user)
):
    try:
        return await machine.change_status(current_user, task_id, status_update.status)
    except TaskServiceError as e:
        raise to_http_error(e)


@router.patch("/{task_id}/assign", response_model=TaskOut)
async def assign_task(
    task_id: str,
    assignment: TaskAssign,
    machine: TaskStateMachine = Depends(get_task_state_machine),
    current_user: CurrentUser = Depends(get_current_user)
):
    try:
        return await machine.assign_task(current_user, task_id, assignment.assigned_to)
    except TaskServiceError as e:
        raise to_http_error(e)

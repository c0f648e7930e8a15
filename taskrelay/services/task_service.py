"""
Task state machine: who may change a task, and which notification follows.

Statuses may move freely between pending, in-progress and completed; the
rules below only decide who may trigger a change and which event it emits.

    create / update / delete / assign    manager role
    change status                        owning manager or current assignee
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from fastapi.concurrency import run_in_threadpool

from taskrelay.models.task import Task, TaskStatus
from taskrelay.schemas.events import (
    AssignedTask,
    AssignedTaskPayload,
    NotificationEvent,
    TaskCompleted,
    TaskCompletedPayload,
    TaskUpdated,
    TaskUpdatedPayload,
)
from taskrelay.schemas.task import TaskCreate, TaskUpdate, TaskWithAssigner
from taskrelay.schemas.user import CurrentUser
from taskrelay.services.notification_router import NotificationRouter
from taskrelay.services.task_store import TaskStore
from taskrelay.utils.errors import PermissionDeniedError, TaskNotFoundError

logger = logging.getLogger(__name__)

# Fields an update may clear by sending null
NULLABLE_FIELDS = {"description", "due_date"}


class TaskAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    ASSIGN = "assign"
    CHANGE_STATUS = "change_status"


class TaskStateMachine:
    def __init__(self, store: TaskStore, router: NotificationRouter):
        self.store = store
        self.router = router

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------
    @staticmethod
    def is_allowed(action: TaskAction, actor: CurrentUser, task: Optional[Task] = None) -> bool:
        if action == TaskAction.CHANGE_STATUS:
            return TaskStateMachine.is_owning_manager(actor, task) or task.assigned_to == actor.user_id
        return actor.is_manager

    @staticmethod
    def is_owning_manager(actor: CurrentUser, task: Task) -> bool:
        return actor.is_manager and task.created_by == actor.user_id

    def _authorize(self, action: TaskAction, actor: CurrentUser, task: Optional[Task] = None) -> None:
        if not self.is_allowed(action, actor, task):
            logger.warning(f"User {actor.user_id} ({actor.role.value}) denied {action.value}"
                           + (f" on task {task.id}" if task is not None else ""))
            if action == TaskAction.CHANGE_STATUS:
                raise PermissionDeniedError("Only the task owner or its assignee can change its status")
            raise PermissionDeniedError(f"Only managers can {action.value} tasks")

    def _require_task(self, task_id: str) -> Task:
        task = self.store.find_by_id(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_task(self, task_id: str) -> Task:
        return self._require_task(task_id)

    def list_tasks(self, actor: CurrentUser) -> List[TaskWithAssigner]:
        """Managers see every task, employees only the ones assigned to them"""
        if actor.is_manager:
            tasks = self.store.find_all()
        else:
            tasks = self.store.find_all(assigned_to=actor.user_id)
        return [self._with_assigner(task) for task in tasks]

    def list_tasks_created_by(self, user_id: str) -> List[TaskWithAssigner]:
        return [self._with_assigner(task) for task in self.store.find_all(created_by=user_id)]

    @staticmethod
    def _with_assigner(task: Task) -> TaskWithAssigner:
        out = TaskWithAssigner.model_validate(task)
        return out.model_copy(update={"assigned_by": task.creator.name if task.creator else None})

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    async def create_task(self, actor: CurrentUser, data: TaskCreate) -> Task:
        self._authorize(TaskAction.CREATE, actor)

        task = await run_in_threadpool(self.store.create, {
            **data.model_dump(),
            "status": TaskStatus.PENDING,
            "created_by": actor.user_id,
        })
        logger.info(f"Task {task.id} created by {actor.user_id} and assigned to {task.assigned_to}")

        await self._emit(self._assigned_event(task))
        return task

    async def update_task(self, actor: CurrentUser, task_id: str, data: TaskUpdate) -> Task:
        self._authorize(TaskAction.UPDATE, actor)

        patch = {
            key: value
            for key, value in data.model_dump(exclude_unset=True).items()
            if value is not None or key in NULLABLE_FIELDS
        }
        task = await run_in_threadpool(self.store.update, task_id, patch)
        if task is None:
            raise TaskNotFoundError(task_id)
        logger.info(f"Task {task.id} updated by {actor.user_id}: {sorted(patch)}")

        if "assigned_to" in patch:
            event = self._assigned_event(task)
        else:
            updates = {key: value for key, value in data.model_dump(mode="json").items() if key in patch}
            event = self._updated_event(task, updates)
        await self._emit(event)
        return task

    async def delete_task(self, actor: CurrentUser, task_id: str) -> None:
        self._authorize(TaskAction.DELETE, actor)

        if not await run_in_threadpool(self.store.delete, task_id):
            raise TaskNotFoundError(task_id)
        logger.info(f"Task {task_id} deleted by {actor.user_id}")

    async def change_status(self, actor: CurrentUser, task_id: str, status: TaskStatus) -> Task:
        task = await run_in_threadpool(self._require_task, task_id)
        self._authorize(TaskAction.CHANGE_STATUS, actor, task)
        by_owner = self.is_owning_manager(actor, task)

        old_status = task.status
        task = await run_in_threadpool(self.store.update, task_id, {"status": status})
        if task is None:
            raise TaskNotFoundError(task_id)
        logger.info(f"Task {task.id} status changed from {old_status.value} to {status.value} by {actor.user_id}")

        if status == TaskStatus.COMPLETED:
            event = TaskCompleted(
                target_user_id=task.created_by,
                payload=TaskCompletedPayload(task_id=task.id, title=task.title),
            )
        elif by_owner:
            # Owner-initiated status changes reach the assignee as an assignment notice
            event = self._assigned_event(task)
        else:
            event = self._updated_event(task, {"status": status.value})
        await self._emit(event)
        return task

    async def assign_task(self, actor: CurrentUser, task_id: str, assignee_id: str) -> Task:
        self._authorize(TaskAction.ASSIGN, actor)

        task = await run_in_threadpool(self.store.update, task_id, {"assigned_to": assignee_id})
        if task is None:
            raise TaskNotFoundError(task_id)
        logger.info(f"Task {task.id} reassigned to {assignee_id} by {actor.user_id}")

        await self._emit(self._assigned_event(task))
        return task

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    @staticmethod
    def _assigned_event(task: Task) -> AssignedTask:
        return AssignedTask(
            target_user_id=task.assigned_to,
            payload=AssignedTaskPayload(task_id=task.id, title=task.title, assigned_by=task.created_by),
        )

    @staticmethod
    def _updated_event(task: Task, updates: Dict[str, Any]) -> TaskUpdated:
        return TaskUpdated(
            target_user_id=task.assigned_to,
            payload=TaskUpdatedPayload(task_id=task.id, title=task.title, updates=updates),
        )

    async def _emit(self, event: NotificationEvent) -> None:
        # Delivery outcome never changes the result of the action
        try:
            await self.router.deliver(event)
        except Exception:
            logger.exception(f"Error delivering {event.event_name} to user {event.target_user_id}")

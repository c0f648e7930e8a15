# taskrelay/schemas/events.py
"""
Typed notification events produced by task mutations.

Each variant carries the user it is addressed to and a fixed payload. The
wire form pushed to a channel is ``{"event": <event_name>, "payload": {...}}``
with camelCase payload keys.
"""

from typing import Annotated, Any, ClassVar, Dict, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class EventPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    task_id: str
    title: str


class AssignedTaskPayload(EventPayload):
    assigned_by: str


class TaskUpdatedPayload(EventPayload):
    updates: Dict[str, Any]


class TaskCompletedPayload(EventPayload):
    pass


class AssignedTask(BaseModel):
    event_name: ClassVar[str] = "task:assigned"

    kind: Literal["AssignedTask"] = "AssignedTask"
    target_user_id: str
    payload: AssignedTaskPayload


class TaskUpdated(BaseModel):
    event_name: ClassVar[str] = "task:updated"

    kind: Literal["TaskUpdated"] = "TaskUpdated"
    target_user_id: str
    payload: TaskUpdatedPayload


class TaskCompleted(BaseModel):
    event_name: ClassVar[str] = "task:completed"

    kind: Literal["TaskCompleted"] = "TaskCompleted"
    target_user_id: str
    payload: TaskCompletedPayload


NotificationEvent = Annotated[
    Union[AssignedTask, TaskUpdated, TaskCompleted],
    Field(discriminator="kind"),
]


def wire_message(event: NotificationEvent) -> Dict[str, Any]:
    """Render an event as the frame sent to a channel"""
    return {
        "event": event.event_name,
        "payload": event.payload.model_dump(mode="json", by_alias=True),
    }

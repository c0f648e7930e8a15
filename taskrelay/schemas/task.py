from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from taskrelay.models.task import TaskStatus


class TaskCreate(BaseModel):
    # status is not accepted here, new tasks always start as pending
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    assigned_to: str = Field(..., min_length=1)


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    assigned_to: Optional[str] = Field(None, min_length=1)

    model_config = {
        "from_attributes": True
    }


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


class TaskAssign(BaseModel):
    assigned_to: str = Field(..., min_length=1)


class TaskOut(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    status: TaskStatus
    due_date: Optional[datetime] = None
    created_by: str
    assigned_to: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }


class TaskWithAssigner(TaskOut):
    # Display name of the creator
    assigned_by: Optional[str] = None


class TaskList(BaseModel):
    total: int
    tasks: List[TaskWithAssigner]

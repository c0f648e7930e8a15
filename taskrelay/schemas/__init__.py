from .user import CurrentUser, UserOut
from .task import TaskCreate, TaskUpdate, TaskStatusUpdate, TaskAssign, TaskOut, TaskWithAssigner, TaskList
from .events import AssignedTask, TaskUpdated, TaskCompleted, NotificationEvent, wire_message

# taskrelay/utils/errors.py


class TaskServiceError(Exception):
    """Base class for failures raised by the task state machine"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TaskNotFoundError(TaskServiceError):
    """Referenced task does not exist"""

    def __init__(self, task_id: str):
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class PermissionDeniedError(TaskServiceError):
    """Role or ownership check failed"""

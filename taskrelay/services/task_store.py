import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from taskrelay.models.task import Task

logger = logging.getLogger(__name__)


class TaskStore:
    """Key-based CRUD over task records, bound to one database session"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, data: Dict[str, Any]) -> Task:
        task = Task(**data)
        try:
            self.db.add(task)
            self.db.commit()
            self.db.refresh(task)
        except Exception:
            logger.exception("Error creating task")
            self.db.rollback()
            raise
        return task

    def find_by_id(self, task_id: str) -> Optional[Task]:
        return self.db.query(Task).filter(Task.id == task_id).first()

    def find_all(self, assigned_to: Optional[str] = None, created_by: Optional[str] = None) -> List[Task]:
        query = self.db.query(Task).options(joinedload(Task.creator))
        if assigned_to is not None:
            query = query.filter(Task.assigned_to == assigned_to)
        if created_by is not None:
            query = query.filter(Task.created_by == created_by)
        return query.order_by(Task.created_at).all()

    def update(self, task_id: str, patch: Dict[str, Any]) -> Optional[Task]:
        task = self.find_by_id(task_id)
        if task is None:
            return None
        try:
            for key, value in patch.items():
                setattr(task, key, value)
            self.db.commit()
            self.db.refresh(task)
        except Exception:
            logger.exception(f"Error updating task {task_id}")
            self.db.rollback()
            raise
        return task

    def delete(self, task_id: str) -> bool:
        task = self.find_by_id(task_id)
        if task is None:
            return False
        try:
            self.db.delete(task)
            self.db.commit()
        except Exception:
            logger.exception(f"Error deleting task {task_id}")
            self.db.rollback()
            raise
        return True

# taskrelay/models/user.py
import enum
import uuid

from sqlalchemy import Column, String, Enum
from sqlalchemy.orm import relationship

from taskrelay.database import Base


class UserRole(str, enum.Enum):
    MANAGER = "manager"
    EMPLOYEE = "employee"


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=lambda roles: [r.value for r in roles]),
        nullable=False,
    )
    # Owned by the identity service; never serialized
    password_hash = Column(String, nullable=False, default="")

    created_tasks = relationship("Task", back_populates="creator", foreign_keys="Task.created_by")
    assigned_tasks = relationship("Task", back_populates="assignee", foreign_keys="Task.assigned_to")

    def __repr__(self):
        return f"<User(id={self.id}, name='{self.name}', role='{self.role}')>"

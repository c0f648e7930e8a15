from pydantic import BaseModel

from taskrelay.models.user import UserRole


class CurrentUser(BaseModel):
    """Verified identity attached to every inbound action"""
    user_id: str
    role: UserRole

    @property
    def is_manager(self) -> bool:
        return self.role == UserRole.MANAGER


class UserOut(BaseModel):
    id: str
    name: str
    email: str
    role: UserRole

    model_config = {
        "from_attributes": True
    }

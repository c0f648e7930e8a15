# taskrelay/routers/users.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from taskrelay.database import get_db
from taskrelay.models.user import User, UserRole
from taskrelay.schemas.user import CurrentUser, UserOut
from taskrelay.utils.auth import get_current_user

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=UserOut)
def get_current_user_info(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Get current user information"""
    user = db.query(User).filter(User.id == current_user.user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/employees", response_model=List[UserOut])
def get_employees(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Get all employees that tasks can be assigned to"""
    return db.query(User).filter(User.role == UserRole.EMPLOYEE).order_by(User.name).all()

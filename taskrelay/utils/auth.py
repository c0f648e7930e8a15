# taskrelay/utils/auth.py
import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from taskrelay.config.settings import settings
from taskrelay.database import get_db
from taskrelay.models.user import User
from taskrelay.schemas.user import CurrentUser

logger = logging.getLogger(__name__)

# Tokens are issued by the external identity service
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def verify_token(token: str) -> Optional[dict]:
    """Verify JWT token and return payload without raising exceptions"""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> CurrentUser:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    payload = verify_token(token)
    if payload is None:
        raise credentials_exception

    user_id = payload.get("id") or payload.get("sub")
    if not user_id:
        raise credentials_exception

    user = db.query(User).filter(User.id == str(user_id)).first()
    if user is None:
        logger.warning(f"Token references unknown user {user_id}")
        raise credentials_exception

    # Role comes from the stored user, not the token claim
    return CurrentUser(user_id=user.id, role=user.role)

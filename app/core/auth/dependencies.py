# app/core/auth/dependencies.py
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import List, Optional

from app.config.database import get_db
from app.shared.database.models import User, UNIT_MANAGER, GENERAL_MANAGER
from app.core.auth.service import AuthService

PRIVILEGED_ROLES = [GENERAL_MANAGER, UNIT_MANAGER]

# Missing credentials are reported by get_current_user as 401
security = HTTPBearer(auto_error=False)

class AuthenticationError(HTTPException):
    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

class AuthorizationError(HTTPException):
    def __init__(self, detail: str = "Not enough permissions"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail
        )

async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """Resolve the verified caller from the bearer token"""
    
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Unauthorized")
    
    payload = AuthService.verify_token(credentials.credentials)
    if payload is None:
        raise AuthenticationError("Invalid or expired token")
    
    user_id = payload.get("user_id")
    if user_id is None:
        raise AuthenticationError("Invalid token payload")
    
    user = db.query(User).filter(User.id == user_id).first()
    
    if user is None:
        raise AuthenticationError("User not found")
    
    if not user.is_active:
        raise AuthenticationError("Inactive user")
    
    return user

def require_roles(allowed_roles: List[str], detail: Optional[str] = None):
    """Factory for a dependency that requires one of the given roles"""
    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        # The role is read from the store on every request, never from the token
        if current_user.role not in allowed_roles:
            raise AuthorizationError(
                detail or f"Role '{current_user.role}' is not allowed. Allowed roles: {allowed_roles}"
            )
        return current_user
    return role_checker

def get_privileged_user(
    current_user: User = Depends(require_roles(
        PRIVILEGED_ROLES, "Only managers can perform this action"
    ))
):
    """Dependency for general managers and unit managers"""
    return current_user

def is_general_manager(user: User) -> bool:
    return user.role == GENERAL_MANAGER

def ensure_general_manager(user: User, detail: str) -> None:
    """Per-action gate for operations reserved to general managers"""
    if not is_general_manager(user):
        raise AuthorizationError(detail)

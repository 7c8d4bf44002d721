from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
import logging

from app.config.database import get_db
from app.core.auth.service import AuthService
from app.core.auth.schemas import UserLogin, TokenResponse, UserResponse, TokenPayload
from app.shared.database.models import User, SALES, UNIT_MANAGER, GENERAL_MANAGER
from app.core.auth.dependencies import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()

def _user_response(user: User) -> UserResponse:
    profile = user.profile
    return UserResponse(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=user.role,
        unit_id=profile.unit_id if profile else None,
        unit_name=profile.unit.name if profile and profile.unit else None,
        avatar_url=profile.avatar_url if profile else None,
        is_active=user.is_active
    )

def _authenticate(db: Session, email: str, password: str) -> TokenResponse:
    user = db.query(User).filter(User.email == email.lower()).first()
    
    if not user or not AuthService.verify_password(password, user.password_hash):
        logger.warning(f"Failed login for {email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user"
        )
    
    token_data = TokenPayload(user_id=user.id, email=user.email, role=user.role)
    access_token = AuthService.create_access_token(data=token_data.model_dump())
    
    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        user=_user_response(user)
    )

@router.post("/login", response_model=TokenResponse)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    """
    Login endpoint (OAuth2 password form)
    
    **Parameters:**
    - **username**: user email
    - **password**: user password
    """
    return _authenticate(db, form_data.username, form_data.password)


@router.post("/login-json", response_model=TokenResponse)
async def login_json(
    user_login: UserLogin,
    db: Session = Depends(get_db)
):
    """
    Alternative login endpoint accepting JSON
    
    **Body:**
    ```json
        {
            "email": "user@example.com",
            "password": "password123"
        }
    """
    return _authenticate(db, user_login.email, user_login.password)

@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """
    Current user information
    **Required headers:**
    - Authorization: Bearer {token}
    """
    return _user_response(current_user)

@router.post("/logout")
async def logout():
    """
    Logout (stateless JWT, informational only)
    
    The client must drop the token from its storage.
    """
    return {"message": "Logged out. Remove the token from the client."}

# Handy for the client to toggle management screens
@router.get("/check-permissions")
async def check_permissions(
    current_user: User = Depends(get_current_user)
):
    """Capabilities of the current user"""
    permissions = {
        SALES: ["view_organization", "view_users"],
        UNIT_MANAGER: ["view_organization", "view_users", "manage_units", "assign_unit_manager", "edit_profiles"],
        GENERAL_MANAGER: [
            "view_organization", "view_users", "manage_units", "assign_unit_manager",
            "edit_profiles", "manage_users", "change_roles", "assign_manager_units"
        ]
    }
    
    role = current_user.role
    
    return {
        "user": {
            "id": current_user.id,
            "email": current_user.email,
            "role": role,
            "full_name": current_user.full_name
        },
        "permissions": permissions.get(role, []),
        "can_access": {
            "organization_admin": role in [UNIT_MANAGER, GENERAL_MANAGER],
            "user_admin": role == GENERAL_MANAGER
        }
    }

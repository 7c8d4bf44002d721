# app/modules/users/router.py
from fastapi import APIRouter, Body, Depends, Response
from sqlalchemy.orm import Session
from typing import Any, Dict, List, Union

from app.config.database import get_db
from app.core.auth.dependencies import get_current_user, get_privileged_user
from app.shared.database.models import User
from app.shared.schemas.common import SuccessResponse, ERROR_RESPONSES
from app.shared.services.invalidation import mark_invalidated, tags_for
from .service import UsersService
from .schemas import UserWithRoleResponse, UserStats, UserCreatedResponse

router = APIRouter()

@router.get("", response_model=List[UserWithRoleResponse])
async def list_users(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Every profile with its role, unit and managed units"""
    service = UsersService(db)
    return await service.list_users()

@router.get("/stats", response_model=UserStats)
async def get_user_stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """User counts per role"""
    service = UsersService(db)
    return await service.get_user_stats()

@router.post("/manage", response_model=Union[UserCreatedResponse, SuccessResponse], responses=ERROR_RESPONSES)
async def manage_users(
    response: Response,
    payload: Dict[str, Any] = Body(...),
    current_user: User = Depends(get_privileged_user),
    db: Session = Depends(get_db)
):
    """
    User mutations, selected by `action`
    
    **Actions:**
    - `create`: email, password, full_name, role?, unit_id? (general manager)
    - `update`: user_id, full_name?, unit_id?, role? (role: general manager)
    - `delete`: user_id (general manager, never yourself)
    - `assign_manager_units`: user_id, unit_ids (general manager)
    
    **Permissions:** general_manager or unit_manager
    """
    service = UsersService(db)
    action, result = await service.handle_action(payload, current_user)
    mark_invalidated(response, tags_for("users", action))
    return result

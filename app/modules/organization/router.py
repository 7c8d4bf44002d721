# app/modules/organization/router.py
from fastapi import APIRouter, Body, Depends, Response
from sqlalchemy.orm import Session
from typing import Any, Dict, List, Union

from app.config.database import get_db
from app.core.auth.dependencies import get_current_user, get_privileged_user
from app.shared.database.models import User
from app.shared.schemas.common import SuccessResponse, ERROR_RESPONSES
from app.shared.services.invalidation import mark_invalidated, tags_for
from .service import OrganizationService
from .schemas import OrganizationTree, OrganizationStats, UnitResponse, UnitMutationResponse

router = APIRouter()

# ==================== READS ====================

@router.get("/tree", response_model=OrganizationTree)
async def get_organization_tree(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Full organization tree, rebuilt on every request
    
    **Includes:**
    - General managers with the units they oversee
    - Root units with nested children
    - Manager and role-annotated members of each unit
    - Depth level (root = 0)
    """
    service = OrganizationService(db)
    return await service.get_organization_tree()

@router.get("/stats", response_model=OrganizationStats)
async def get_organization_stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Headline counts for the organization dashboard"""
    service = OrganizationService(db)
    return await service.get_organization_stats()

@router.get("/units", response_model=List[UnitResponse])
async def list_units(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Flat list of units ordered by name"""
    service = OrganizationService(db)
    return await service.list_units()

# ==================== MUTATIONS ====================

@router.post("/units/manage", response_model=Union[UnitMutationResponse, SuccessResponse], responses=ERROR_RESPONSES)
async def manage_units(
    response: Response,
    payload: Dict[str, Any] = Body(...),
    current_user: User = Depends(get_privileged_user),
    db: Session = Depends(get_db)
):
    """
    Unit mutations, selected by `action`
    
    **Actions:**
    - `create`: name, code, parent_id?
    - `update`: unit_id, name?, code?, parent_id?
    - `delete`: unit_id (no child units, no members)
    - `assign_manager`: unit_id, user_id | null
    
    **Permissions:** general_manager or unit_manager
    """
    service = OrganizationService(db)
    action, result = await service.handle_action(payload, current_user)
    mark_invalidated(response, tags_for("units", action))
    return result

# app/modules/users/service.py
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from typing import Dict, Any, List, Tuple
from pydantic import BaseModel, ValidationError
import logging

from app.core.auth.service import AuthService
from app.core.auth.dependencies import AuthorizationError, ensure_general_manager, is_general_manager
from app.shared.database.models import User, SALES, UNIT_MANAGER, GENERAL_MANAGER, DEFAULT_ROLE
from app.shared.database.transactions import unit_of_work
from app.shared.schemas.actions import parse_action
from app.shared.schemas.common import SuccessResponse, UnitSummary
from .repository import UsersRepository
from .schemas import (
    UserCreateAction, UserUpdateAction, UserDeleteAction, AssignManagerUnitsAction,
    UserCreatedResponse, UserWithRoleResponse, UserStats
)

logger = logging.getLogger(__name__)

USER_ACTIONS = {
    "create": UserCreateAction,
    "update": UserUpdateAction,
    "delete": UserDeleteAction,
    "assign_manager_units": AssignManagerUnitsAction,
}

# Actions reserved to general managers, with the refusal message
GENERAL_MANAGER_ACTIONS = {
    "create": "Only general managers can create users",
    "delete": "Only general managers can delete users",
    "assign_manager_units": "Only general managers can assign managed units",
}

def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class UsersService:
    """User listing and user/role mutations"""
    
    def __init__(self, db: Session):
        self.db = db
        self.repository = UsersRepository(db)
    
    # ==================== READS ====================
    
    async def list_users(self) -> List[UserWithRoleResponse]:
        """Profiles with their role, unit and (for general managers) managed units"""
        role_map = self.repository.get_role_map()
        managed = self.repository.get_managed_units_map()
        
        return [
            UserWithRoleResponse(
                id=profile.id,
                full_name=profile.full_name,
                email=profile.email,
                avatar_url=profile.avatar_url,
                unit_id=profile.unit_id,
                created_at=profile.created_at,
                updated_at=profile.updated_at,
                role=role_map.get(profile.id, DEFAULT_ROLE),
                unit=UnitSummary.model_validate(profile.unit) if profile.unit else None,
                managed_units=[UnitSummary.model_validate(u) for u in managed.get(profile.id, [])]
            )
            for profile in self.repository.get_profiles_with_units()
        ]
    
    async def get_user_stats(self) -> UserStats:
        users = await self.list_users()
        return UserStats(
            sales=sum(1 for u in users if u.role == SALES),
            unit_manager=sum(1 for u in users if u.role == UNIT_MANAGER),
            general_manager=sum(1 for u in users if u.role == GENERAL_MANAGER),
            total=len(users)
        )
    
    # ==================== ACTION DISPATCH ====================
    
    async def handle_action(self, payload: Dict[str, Any], caller: User) -> Tuple[str, BaseModel]:
        self._authorize(payload, caller)
        request = parse_action(payload, USER_ACTIONS)
        logger.info(f"Processing user action '{request.action}' by user {caller.id}")
        
        handlers = {
            "create": self.create_user,
            "update": self.update_user,
            "delete": self.delete_user,
            "assign_manager_units": self.assign_manager_units,
        }
        result = await handlers[request.action](request, caller)
        return request.action, result
    
    def _authorize(self, payload: Any, caller: User) -> None:
        """
        Role checks that do not depend on a valid payload run first, so an
        unprivileged caller always gets 403 and self-deletion always 400.
        """
        if not isinstance(payload, dict):
            return
        action = payload.get("action")
        
        if action == "delete" and self._targets_self(payload, caller):
            raise _bad_request("You cannot delete your own account")
        
        if isinstance(action, str) and action in GENERAL_MANAGER_ACTIONS:
            ensure_general_manager(caller, GENERAL_MANAGER_ACTIONS[action])
    
    @staticmethod
    def _targets_self(payload: Dict[str, Any], caller: User) -> bool:
        # Same coercion as the delete payload itself, so 7, "7" and 7.0 all match
        try:
            request = UserDeleteAction.model_validate(payload)
        except ValidationError:
            return False
        return request.user_id == caller.id
    
    # ==================== USER MUTATIONS ====================
    
    async def create_user(self, data: UserCreateAction, caller: User) -> UserCreatedResponse:
        if self.repository.get_user_by_email(data.email):
            raise _bad_request("Email is already in use")
        
        if data.unit_id is not None and not self.repository.unit_exists(data.unit_id):
            raise _bad_request("Unit not found")
        
        if data.role == UNIT_MANAGER:
            self._ensure_unit_manager_slot(data.unit_id)
        
        with unit_of_work(self.db, "Error creating user"):
            user = AuthService.create_identity(
                self.db,
                email=data.email,
                password=data.password,
                full_name=data.full_name
            )
            if data.unit_id is not None:
                self.repository.update_profile(user.profile, {"unit_id": data.unit_id})
            if data.role != DEFAULT_ROLE:
                self.repository.set_role(user.id, data.role)
        
        logger.info(f"User created successfully: {user.id}")
        return UserCreatedResponse(user_id=user.id)
    
    async def update_user(self, data: UserUpdateAction, caller: User) -> SuccessResponse:
        changes = data.model_dump(include=data.model_fields_set - {"action", "user_id"})
        
        if "role" in changes and not is_general_manager(caller):
            raise AuthorizationError("Only general managers can change roles")
        
        profile = self.repository.get_profile(data.user_id)
        if profile is None:
            raise _bad_request("User not found")
        
        if changes.get("unit_id") is not None and not self.repository.unit_exists(changes["unit_id"]):
            raise _bad_request("Unit not found")
        
        assignment = self.repository.get_role(profile.id)
        current_role = assignment.role if assignment else DEFAULT_ROLE
        new_role = changes.get("role", current_role)
        new_unit_id = changes["unit_id"] if "unit_id" in changes else profile.unit_id
        
        if new_role == UNIT_MANAGER and ("role" in changes or "unit_id" in changes):
            self._ensure_unit_manager_slot(new_unit_id, exclude_user_id=profile.id)
        
        with unit_of_work(self.db, "Error updating user"):
            profile_changes = {k: v for k, v in changes.items() if k in ("full_name", "unit_id")}
            if profile_changes:
                self.repository.update_profile(profile, profile_changes)
            
            if "role" in changes:
                self.repository.set_role(profile.id, new_role)
                if current_role == GENERAL_MANAGER and new_role != GENERAL_MANAGER:
                    self.repository.clear_manager_units(profile.id)
        
        logger.info(f"User updated successfully: {profile.id}")
        return SuccessResponse()
    
    async def delete_user(self, data: UserDeleteAction, caller: User) -> SuccessResponse:
        if data.user_id == caller.id:
            raise _bad_request("You cannot delete your own account")
        
        if self.repository.get_profile(data.user_id) is None:
            raise _bad_request("User not found")
        
        with unit_of_work(self.db, "Error deleting user"):
            AuthService.delete_identity(self.db, data.user_id)
        
        logger.info(f"User deleted successfully: {data.user_id}")
        return SuccessResponse()
    
    async def assign_manager_units(self, data: AssignManagerUnitsAction, caller: User) -> SuccessResponse:
        """Replace the managed-unit set of a general manager with ``unit_ids``"""
        profile = self.repository.get_profile(data.user_id)
        if profile is None:
            raise _bad_request("User not found")
        
        assignment = self.repository.get_role(profile.id)
        if assignment is None or assignment.role != GENERAL_MANAGER:
            raise _bad_request("Managed units can only be assigned to general managers")
        
        unit_ids = list(dict.fromkeys(data.unit_ids))
        missing = sorted(set(unit_ids) - set(self.repository.get_existing_unit_ids(unit_ids)))
        if missing:
            raise _bad_request(f"Units not found: {missing}")
        
        with unit_of_work(self.db, "Error assigning managed units"):
            self.repository.replace_manager_units(profile.id, unit_ids)
        
        logger.info(f"Manager units assigned successfully: {profile.id} -> {unit_ids}")
        return SuccessResponse()
    
    # ==================== VALIDATION ====================
    
    def _ensure_unit_manager_slot(self, unit_id, exclude_user_id=None) -> None:
        """A unit manager belongs to exactly one unit, and a unit has one manager"""
        if unit_id is None:
            raise _bad_request("A unit manager must belong to a unit")
        
        if self.repository.get_other_unit_manager_ids(unit_id, exclude_user_id):
            raise _bad_request("This unit already has a manager")

# app/modules/organization/service.py
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from typing import Dict, Any, List, Optional, Tuple
from pydantic import BaseModel
import logging

from app.core.auth.dependencies import AuthorizationError, is_general_manager
from app.shared.database.models import User, SALES, UNIT_MANAGER, GENERAL_MANAGER
from app.shared.database.transactions import unit_of_work
from app.shared.schemas.actions import parse_action
from app.shared.schemas.common import SuccessResponse
from .repository import OrganizationRepository
from .tree import build_organization_tree, organization_stats, OrganizationIntegrityError
from .schemas import (
    UnitCreateAction, UnitUpdateAction, UnitDeleteAction, AssignManagerAction,
    UnitResponse, UnitMutationResponse, OrganizationTree, OrganizationStats
)

logger = logging.getLogger(__name__)

UNIT_ACTIONS = {
    "create": UnitCreateAction,
    "update": UnitUpdateAction,
    "delete": UnitDeleteAction,
    "assign_manager": AssignManagerAction,
}

def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class OrganizationService:
    """Organization tree reads and unit mutations"""
    
    def __init__(self, db: Session):
        self.db = db
        self.repository = OrganizationRepository(db)
    
    # ==================== READS ====================
    
    async def get_organization_tree(self) -> OrganizationTree:
        """Rebuild the whole tree from the current rows"""
        try:
            return build_organization_tree(
                units=self.repository.get_units_ordered(),
                profiles=self.repository.get_profiles(),
                roles=self.repository.get_roles(),
                manager_units=self.repository.get_manager_units()
            )
        except OrganizationIntegrityError as e:
            logger.error(f"Organization data integrity error: {e} (units {e.unit_ids})")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Organization data is inconsistent: {e}"
            )
    
    async def get_organization_stats(self) -> OrganizationStats:
        tree = await self.get_organization_tree()
        return organization_stats(tree)
    
    async def list_units(self) -> List[UnitResponse]:
        return [UnitResponse.model_validate(unit) for unit in self.repository.get_units_ordered()]
    
    # ==================== ACTION DISPATCH ====================
    
    async def handle_action(self, payload: Dict[str, Any], caller: User) -> Tuple[str, BaseModel]:
        """Validate the payload for its action and run it"""
        request = parse_action(payload, UNIT_ACTIONS)
        logger.info(f"Processing unit action '{request.action}' by user {caller.id}")
        
        handlers = {
            "create": self.create_unit,
            "update": self.update_unit,
            "delete": self.delete_unit,
            "assign_manager": self.assign_manager,
        }
        result = await handlers[request.action](request, caller)
        return request.action, result
    
    # ==================== UNIT MUTATIONS ====================
    
    async def create_unit(self, data: UnitCreateAction, caller: User) -> UnitMutationResponse:
        if data.parent_id is not None and self.repository.get_unit(data.parent_id) is None:
            raise _bad_request("Parent unit not found")
        
        with unit_of_work(self.db, "Error creating unit"):
            unit = self.repository.create_unit(data.model_dump(exclude={"action"}))
        
        self.db.refresh(unit)
        logger.info(f"Unit created successfully: {unit.id}")
        return UnitMutationResponse(unit=UnitResponse.model_validate(unit))
    
    async def update_unit(self, data: UnitUpdateAction, caller: User) -> UnitMutationResponse:
        changes = data.model_dump(include=data.model_fields_set - {"action", "unit_id"})
        
        if "parent_id" in changes and changes["parent_id"] == data.unit_id:
            raise _bad_request("A unit cannot be its own parent")
        
        unit = self.repository.get_unit(data.unit_id)
        if unit is None:
            raise _bad_request("Unit not found")
        
        if changes.get("parent_id") is not None:
            self._ensure_no_cycle(data.unit_id, changes["parent_id"])
        
        with unit_of_work(self.db, "Error updating unit"):
            self.repository.update_unit(unit, changes)
        
        self.db.refresh(unit)
        logger.info(f"Unit updated successfully: {unit.id}")
        return UnitMutationResponse(unit=UnitResponse.model_validate(unit))
    
    async def delete_unit(self, data: UnitDeleteAction, caller: User) -> SuccessResponse:
        if self.repository.get_unit(data.unit_id) is None:
            raise _bad_request("Unit not found")
        
        if self.repository.count_children(data.unit_id) > 0:
            raise _bad_request("Cannot delete a unit that has child units. Delete the child units first.")
        
        if self.repository.count_members(data.unit_id) > 0:
            raise _bad_request("Cannot delete a unit that has members. Reassign the members first.")
        
        with unit_of_work(self.db, "Error deleting unit"):
            self.repository.delete_unit(data.unit_id)
        
        logger.info(f"Unit deleted successfully: {data.unit_id}")
        return SuccessResponse()
    
    async def assign_manager(self, data: AssignManagerAction, caller: User) -> SuccessResponse:
        """
        Make ``user_id`` the manager of the unit, or remove the current
        manager when ``user_id`` is null.

        A unit has at most one manager: whoever held the post before is
        demoted to sales. Demoted profiles keep their unit_id and stay in the
        unit as members.
        """
        if self.repository.get_unit(data.unit_id) is None:
            raise _bad_request("Unit not found")
        
        current_managers = self.repository.get_unit_managers(data.unit_id)
        to_demote = [p for p in current_managers if p.id != data.user_id]
        
        target = None
        target_role = None
        if data.user_id is not None:
            target = self.repository.get_profile(data.user_id)
            if target is None:
                raise _bad_request("User not found")
            assignment = self.repository.get_role(target.id)
            target_role = assignment.role if assignment else SALES
        
        if target_role == GENERAL_MANAGER and not is_general_manager(caller):
            raise AuthorizationError("Only general managers can change the role of a general manager")
        
        with unit_of_work(self.db, "Error assigning unit manager"):
            for profile in to_demote:
                self.repository.set_role(profile.id, SALES)
                logger.info(f"Unit manager {profile.id} demoted to sales (unit {data.unit_id})")
            
            if target is not None:
                target.unit_id = data.unit_id
                self.repository.set_role(target.id, UNIT_MANAGER)
                if target_role == GENERAL_MANAGER:
                    # Manager-unit links only mean something for general managers
                    self.repository.clear_manager_units(target.id)
        
        logger.info(f"Manager assigned successfully: unit {data.unit_id}, user {data.user_id}")
        return SuccessResponse()
    
    # ==================== VALIDATION ====================
    
    def _ensure_no_cycle(self, unit_id: int, parent_id: int) -> None:
        """
        Reject a parent change that would make the unit its own ancestor.

        Walks up from the proposed parent; a missing link or a walk longer
        than the number of units is treated as a rejection.
        """
        parents = self.repository.get_parent_map()
        if parent_id not in parents:
            raise _bad_request("Parent unit not found")
        
        current: Optional[int] = parent_id
        steps = 0
        while current is not None:
            if current == unit_id:
                raise _bad_request("Cannot move a unit under one of its own descendants")
            if current not in parents:
                raise _bad_request(f"Broken unit hierarchy at unit {current}")
            steps += 1
            if steps > len(parents):
                raise _bad_request("Existing unit hierarchy contains a cycle")
            current = parents[current]

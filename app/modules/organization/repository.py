# app/modules/organization/repository.py
from sqlalchemy.orm import Session
from typing import List, Dict, Any, Optional

from app.shared.database.models import Unit, Profile, UserRole, ManagerUnit, UNIT_MANAGER

class OrganizationRepository:
    """Data access for units and the rows the organization tree is built from"""
    
    def __init__(self, db: Session):
        self.db = db
    
    # ==================== READS ====================
    
    def get_units_ordered(self) -> List[Unit]:
        return self.db.query(Unit).order_by(Unit.name, Unit.id).all()
    
    def get_profiles(self) -> List[Profile]:
        return self.db.query(Profile).order_by(Profile.full_name, Profile.id).all()
    
    def get_roles(self) -> List[UserRole]:
        return self.db.query(UserRole).all()
    
    def get_manager_units(self) -> List[ManagerUnit]:
        return self.db.query(ManagerUnit).order_by(ManagerUnit.id).all()
    
    def get_unit(self, unit_id: int) -> Optional[Unit]:
        return self.db.query(Unit).filter(Unit.id == unit_id).first()
    
    def get_parent_map(self) -> Dict[int, Optional[int]]:
        """unit_id -> parent_id for every unit"""
        return {row.id: row.parent_id for row in self.db.query(Unit.id, Unit.parent_id).all()}
    
    def count_children(self, unit_id: int) -> int:
        return self.db.query(Unit).filter(Unit.parent_id == unit_id).count()
    
    def count_members(self, unit_id: int) -> int:
        return self.db.query(Profile).filter(Profile.unit_id == unit_id).count()
    
    def get_profile(self, user_id: int) -> Optional[Profile]:
        return self.db.query(Profile).filter(Profile.id == user_id).first()
    
    def get_role(self, user_id: int) -> Optional[UserRole]:
        return self.db.query(UserRole).filter(UserRole.user_id == user_id).first()
    
    def get_unit_managers(self, unit_id: int) -> List[Profile]:
        """Profiles in the unit holding the unit_manager role"""
        return self.db.query(Profile).join(
            UserRole, UserRole.user_id == Profile.id
        ).filter(
            Profile.unit_id == unit_id,
            UserRole.role == UNIT_MANAGER
        ).order_by(Profile.id).all()
    
    # ==================== WRITES (no commit) ====================
    
    def create_unit(self, unit_data: Dict[str, Any]) -> Unit:
        unit = Unit(
            name=unit_data['name'],
            code=unit_data['code'],
            parent_id=unit_data.get('parent_id')
        )
        self.db.add(unit)
        self.db.flush()
        return unit
    
    def update_unit(self, unit: Unit, changes: Dict[str, Any]) -> Unit:
        for key, value in changes.items():
            setattr(unit, key, value)
        self.db.flush()
        return unit
    
    def delete_unit(self, unit_id: int) -> None:
        """Drop the unit's manager-unit links, then the unit"""
        self.db.query(ManagerUnit).filter(
            ManagerUnit.unit_id == unit_id
        ).delete(synchronize_session=False)
        self.db.query(Unit).filter(Unit.id == unit_id).delete(synchronize_session=False)
        self.db.flush()
    
    def set_role(self, user_id: int, role: str) -> UserRole:
        assignment = self.get_role(user_id)
        if assignment is None:
            assignment = UserRole(user_id=user_id, role=role)
            self.db.add(assignment)
        else:
            assignment.role = role
        self.db.flush()
        return assignment
    
    def clear_manager_units(self, user_id: int) -> None:
        self.db.query(ManagerUnit).filter(
            ManagerUnit.user_id == user_id
        ).delete(synchronize_session=False)
        self.db.flush()

# app/modules/users/repository.py
from sqlalchemy.orm import Session, joinedload
from typing import List, Dict, Optional

from app.shared.database.models import (
    User, Profile, UserRole, ManagerUnit, Unit, UNIT_MANAGER
)

class UsersRepository:
    def __init__(self, db: Session):
        self.db = db
    
    # ==================== READS ====================
    
    def get_profiles_with_units(self) -> List[Profile]:
        return self.db.query(Profile).options(
            joinedload(Profile.unit)
        ).order_by(Profile.full_name, Profile.id).all()
    
    def get_role_map(self) -> Dict[int, str]:
        return {row.user_id: row.role for row in self.db.query(UserRole).all()}
    
    def get_managed_units_map(self) -> Dict[int, List[Unit]]:
        """general manager id -> units they oversee"""
        rows = self.db.query(ManagerUnit).options(
            joinedload(ManagerUnit.unit)
        ).order_by(ManagerUnit.id).all()
        
        managed: Dict[int, List[Unit]] = {}
        for row in rows:
            if row.unit is not None:
                managed.setdefault(row.user_id, []).append(row.unit)
        return managed
    
    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()
    
    def get_profile(self, user_id: int) -> Optional[Profile]:
        return self.db.query(Profile).filter(Profile.id == user_id).first()
    
    def get_role(self, user_id: int) -> Optional[UserRole]:
        return self.db.query(UserRole).filter(UserRole.user_id == user_id).first()
    
    def get_existing_unit_ids(self, unit_ids: List[int]) -> List[int]:
        if not unit_ids:
            return []
        rows = self.db.query(Unit.id).filter(Unit.id.in_(unit_ids)).all()
        return [row.id for row in rows]
    
    def unit_exists(self, unit_id: int) -> bool:
        return self.db.query(Unit.id).filter(Unit.id == unit_id).first() is not None
    
    def get_other_unit_manager_ids(self, unit_id: int, exclude_user_id: Optional[int] = None) -> List[int]:
        query = self.db.query(Profile.id).join(
            UserRole, UserRole.user_id == Profile.id
        ).filter(
            Profile.unit_id == unit_id,
            UserRole.role == UNIT_MANAGER
        )
        if exclude_user_id is not None:
            query = query.filter(Profile.id != exclude_user_id)
        return [row.id for row in query.all()]
    
    # ==================== WRITES (no commit) ====================
    
    def update_profile(self, profile: Profile, changes: Dict) -> Profile:
        for key, value in changes.items():
            setattr(profile, key, value)
        self.db.flush()
        return profile
    
    def set_role(self, user_id: int, role: str) -> UserRole:
        assignment = self.get_role(user_id)
        if assignment is None:
            assignment = UserRole(user_id=user_id, role=role)
            self.db.add(assignment)
        else:
            assignment.role = role
        self.db.flush()
        return assignment
    
    def replace_manager_units(self, user_id: int, unit_ids: List[int]) -> None:
        """Full replace: drop every existing link, then insert the new set"""
        self.clear_manager_units(user_id)
        for unit_id in unit_ids:
            self.db.add(ManagerUnit(user_id=user_id, unit_id=unit_id))
        self.db.flush()
    
    def clear_manager_units(self, user_id: int) -> None:
        self.db.query(ManagerUnit).filter(
            ManagerUnit.user_id == user_id
        ).delete(synchronize_session=False)
        self.db.flush()

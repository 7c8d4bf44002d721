# app/modules/organization/schemas.py
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Literal
from datetime import datetime

from app.shared.schemas.common import ProfileSummary

def _clean_text(value: Optional[str], field_name: str) -> str:
    if value is None:
        raise ValueError(f"{field_name} cannot be null")
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string")
    value = value.strip()
    if not value:
        raise ValueError(f"{field_name} cannot be empty")
    return value

# ==================== ACTION PAYLOADS ====================

class UnitCreateAction(BaseModel):
    """Create a unit; without parent_id the unit is a root"""
    action: Literal["create"]
    name: str = Field(..., max_length=255, description="Unit name")
    code: str = Field(..., max_length=50, description="Unit code")
    parent_id: Optional[int] = Field(None, description="Parent unit (null for a root unit)")
    
    @field_validator("name", "code", mode="before")
    @classmethod
    def validate_text(cls, v, info):
        return _clean_text(v, info.field_name)
    
    class Config:
        json_schema_extra = {
            "example": {
                "action": "create",
                "name": "Ha Noi Branch",
                "code": "HN",
                "parent_id": None
            }
        }

class UnitUpdateAction(BaseModel):
    """Partial update; only the fields present in the payload change"""
    action: Literal["update"]
    unit_id: int
    name: Optional[str] = Field(None, max_length=255)
    code: Optional[str] = Field(None, max_length=50)
    parent_id: Optional[int] = None
    
    @field_validator("name", "code", mode="before")
    @classmethod
    def validate_text(cls, v, info):
        # Only runs when the key is present; an explicit null is rejected
        return _clean_text(v, info.field_name)

class UnitDeleteAction(BaseModel):
    action: Literal["delete"]
    unit_id: int

class AssignManagerAction(BaseModel):
    """Assign (user_id) or remove (null) the manager of a unit"""
    action: Literal["assign_manager"]
    unit_id: int
    user_id: Optional[int] = Field(..., description="New manager, or null to remove the current one")

# ==================== RESPONSES ====================

class UnitResponse(BaseModel):
    id: int
    name: str
    code: str
    parent_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    
    class Config:
        from_attributes = True

class UnitMutationResponse(BaseModel):
    success: bool = True
    unit: UnitResponse

class MemberView(ProfileSummary):
    role: str

class UnitNode(BaseModel):
    """A unit with its computed subtree, manager, members and depth"""
    id: int
    name: str
    code: str
    parent_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    children: List["UnitNode"] = []
    manager: Optional[ProfileSummary] = None
    manager_conflict_ids: List[int] = []
    members: List[MemberView] = []
    level: int = 0

class GeneralManagerView(ProfileSummary):
    managed_unit_ids: List[int] = []

class OrganizationTree(BaseModel):
    general_managers: List[GeneralManagerView] = []
    units: List[UnitNode] = []

class OrganizationStats(BaseModel):
    general_managers: int = 0
    units: int = 0
    unit_managers: int = 0
    sales_staff: int = 0
    total_members: int = 0

UnitNode.model_rebuild()

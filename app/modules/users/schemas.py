# app/modules/users/schemas.py
from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List, Literal
from datetime import datetime

from app.shared.schemas.common import UnitSummary

AppRole = Literal["sales", "unit_manager", "general_manager"]

# ==================== ACTION PAYLOADS ====================

class UserCreateAction(BaseModel):
    """Create a user (general managers only)"""
    action: Literal["create"]
    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., max_length=255)
    role: AppRole = "sales"
    unit_id: Optional[int] = None
    
    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        # Emails are stored and matched lower-cased
        return v.strip().lower() if isinstance(v, str) else v
    
    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v):
        if not v.strip():
            raise ValueError("full_name cannot be empty")
        return v.strip()
    
    class Config:
        json_schema_extra = {
            "example": {
                "action": "create",
                "email": "sales01@salesdash.example.com",
                "password": "secret123",
                "full_name": "Tran Thi B",
                "role": "sales",
                "unit_id": 3
            }
        }

class UserUpdateAction(BaseModel):
    """Partial update; `role` requires a general manager"""
    action: Literal["update"]
    user_id: int
    full_name: Optional[str] = Field(None, max_length=255)
    unit_id: Optional[int] = None
    role: Optional[AppRole] = None
    
    @field_validator("full_name", "role", mode="before")
    @classmethod
    def reject_null(cls, v, info):
        # Only runs when the key is present
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v
    
    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v):
        if not v.strip():
            raise ValueError("full_name cannot be empty")
        return v.strip()

class UserDeleteAction(BaseModel):
    action: Literal["delete"]
    user_id: int

class AssignManagerUnitsAction(BaseModel):
    """Replace the set of units a general manager oversees"""
    action: Literal["assign_manager_units"]
    user_id: int
    unit_ids: List[int]

# ==================== RESPONSES ====================

class UserCreatedResponse(BaseModel):
    success: bool = True
    user_id: int

class UserWithRoleResponse(BaseModel):
    id: int
    full_name: str
    email: str
    avatar_url: Optional[str] = None
    unit_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    role: str
    unit: Optional[UnitSummary] = None
    managed_units: List[UnitSummary] = []

class UserStats(BaseModel):
    sales: int = 0
    unit_manager: int = 0
    general_manager: int = 0
    total: int = 0

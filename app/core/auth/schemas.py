from pydantic import BaseModel, Field
from typing import Optional

class UserLogin(BaseModel):
    """Login credentials"""
    email: str = Field(..., description="User email")
    password: str = Field(..., min_length=6, description="User password")
    
    class Config:
        json_schema_extra = {
            "example": {
                "email": "manager@salesdash.example.com",
                "password": "manager123"
            }
        }

class UserResponse(BaseModel):
    """Authenticated user as seen by the client"""
    id: int
    email: str
    full_name: str
    role: Optional[str] = None
    unit_id: Optional[int] = None
    unit_name: Optional[str] = None
    avatar_url: Optional[str] = None
    is_active: bool
    
    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": 1,
                "email": "manager@salesdash.example.com",
                "full_name": "Nguyen Van A",
                "role": "general_manager",
                "unit_id": None,
                "unit_name": None,
                "is_active": True
            }
        }

class TokenResponse(BaseModel):
    """Issued token plus the user it belongs to"""
    access_token: str
    token_type: str = "bearer"
    user: UserResponse

class TokenPayload(BaseModel):
    """Claims carried by an access token"""
    user_id: int
    email: str
    role: Optional[str] = None

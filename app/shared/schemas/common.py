# app/shared/schemas/common.py
from pydantic import BaseModel
from typing import Optional

class SuccessResponse(BaseModel):
    success: bool = True

class ErrorResponse(BaseModel):
    error: str

class UnitSummary(BaseModel):
    id: int
    name: str
    code: str

    class Config:
        from_attributes = True

class ProfileSummary(BaseModel):
    id: int
    full_name: str
    email: str
    avatar_url: Optional[str] = None

    class Config:
        from_attributes = True

# OpenAPI documentation of the {"error": ...} body on failures
ERROR_RESPONSES = {code: {"model": ErrorResponse} for code in (400, 401, 403, 500)}

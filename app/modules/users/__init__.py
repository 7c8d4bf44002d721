# app/modules/users/__init__.py
"""
Users module - people, roles and unit membership

- Listing with role, unit and managed units
- Mutations: create, update, delete, assign managed units

Architecture:
- router.py: FastAPI endpoints
- service.py: business rules and role checks
- repository.py: data access
- schemas.py: Pydantic request/response models
"""

from .router import router as users_router
from .service import UsersService
from .repository import UsersRepository

__all__ = [
    "users_router",
    "UsersService",
    "UsersRepository"
]

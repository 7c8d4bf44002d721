# app/modules/organization/__init__.py
"""
Organization module - unit hierarchy

- Tree builder: flat rows -> forest of units with manager, members and level
- Unit mutations: create, update (cycle-safe), delete (empty units only),
  assign/remove unit manager

Architecture:
- router.py: FastAPI endpoints
- service.py: business rules
- repository.py: data access
- tree.py: tree construction and aggregates
- schemas.py: Pydantic request/response models
"""

from .router import router as organization_router
from .service import OrganizationService
from .repository import OrganizationRepository

__all__ = [
    "organization_router",
    "OrganizationService",
    "OrganizationRepository"
]

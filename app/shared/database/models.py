# app/shared/database/models.py
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Text,
    ForeignKey, UniqueConstraint, CheckConstraint, func
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

SALES = "sales"
UNIT_MANAGER = "unit_manager"
GENERAL_MANAGER = "general_manager"

APP_ROLES = (SALES, UNIT_MANAGER, GENERAL_MANAGER)
DEFAULT_ROLE = SALES

# =====================================================
# TIMESTAMP MIXIN
# =====================================================
class TimestampMixin:
    """Adds created_at and updated_at columns"""
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())
    updated_at = Column(DateTime, nullable=False, server_default=func.current_timestamp(), onupdate=func.current_timestamp())


# =====================================================
# IDENTITY
# =====================================================

class User(Base):
    """Identity record owned by the auth collaborator (login credentials)."""
    __tablename__ = "users"
    
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.current_timestamp())
    
    # Relationships
    profile = relationship("Profile", back_populates="user", uselist=False)
    role_assignment = relationship("UserRole", back_populates="user", uselist=False)
    
    @property
    def role(self):
        return self.role_assignment.role if self.role_assignment else None
    
    @property
    def full_name(self):
        return self.profile.full_name if self.profile else self.email


# =====================================================
# ORGANIZATION
# =====================================================

class Unit(Base, TimestampMixin):
    """Organizational unit; units nest under a parent unit."""
    __tablename__ = "units"
    
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=False)
    parent_id = Column(Integer, ForeignKey("units.id"), nullable=True, index=True)
    
    # Relationships
    parent = relationship("Unit", remote_side=[id], back_populates="children")
    children = relationship("Unit", back_populates="parent")
    members = relationship("Profile", back_populates="unit")
    manager_links = relationship("ManagerUnit", back_populates="unit")


class Profile(Base, TimestampMixin):
    """Public profile of a user; belongs to at most one unit."""
    __tablename__ = "profiles"
    
    id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    avatar_url = Column(Text)
    unit_id = Column(Integer, ForeignKey("units.id"), nullable=True, index=True)
    
    # Relationships
    user = relationship("User", back_populates="profile")
    unit = relationship("Unit", back_populates="members")


class UserRole(Base):
    """Exactly one role per user"""
    __tablename__ = "user_roles"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    role = Column(String(50), nullable=False, default=DEFAULT_ROLE)
    
    __table_args__ = (
        CheckConstraint(
            "role IN (" + ", ".join(f"'{role}'" for role in APP_ROLES) + ")",
            name="user_roles_role_check"
        ),
    )
    
    # Relationships
    user = relationship("User", back_populates="role_assignment")


class ManagerUnit(Base):
    """Units overseen by a general manager (independent of the hierarchy)"""
    __tablename__ = "manager_units"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    unit_id = Column(Integer, ForeignKey("units.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.current_timestamp())
    
    __table_args__ = (
        UniqueConstraint('user_id', 'unit_id', name='manager_units_user_id_unit_id_key'),
    )
    
    # Relationships
    unit = relationship("Unit", back_populates="manager_links")

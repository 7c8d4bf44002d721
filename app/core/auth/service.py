# app/core/auth/service.py
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from app.config.settings import settings
from app.shared.database.models import User, Profile, UserRole, ManagerUnit, DEFAULT_ROLE

logger = logging.getLogger(__name__)

# Password context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

class AuthService:
    """Identity collaborator: credentials, tokens and identity lifecycle"""
    
    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify a plain password against its bcrypt hash"""
        try:
            # bcrypt only looks at the first 72 bytes
            encoded_password = plain_password.encode('utf-8')[:72].decode('utf-8', 'ignore')
            return pwd_context.verify(encoded_password, hashed_password)
        except ValueError as e:
            logger.warning(f"Password verification error: {str(e)}")
            return False
    
    @staticmethod
    def get_password_hash(password: str) -> str:
        """Hash a password"""
        encoded_password = password.encode('utf-8')[:72].decode('utf-8', 'ignore')
        return pwd_context.hash(encoded_password)
    
    @staticmethod
    def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
        """Create a signed access token"""
        to_encode = data.copy()
        
        if expires_delta:
            expire = datetime.now(timezone.utc) + expires_delta
        else:
            expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
        
        to_encode.update({"exp": expire})

        if "user_id" not in to_encode:
            raise ValueError("user_id is required in the token payload")

        return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)
    
    @staticmethod
    def verify_token(token: str) -> Optional[dict]:
        """Decode a token, returning None when invalid or expired"""
        try:
            return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        except JWTError:
            return None
    
    # ==================== IDENTITY LIFECYCLE ====================
    
    @staticmethod
    def create_identity(
        db: Session,
        email: str,
        password: str,
        full_name: str,
        avatar_url: Optional[str] = None
    ) -> User:
        """
        Register a new identity together with its profile and default role.

        Rows are only flushed; the caller owns the transaction.
        """
        user = User(
            email=email,
            password_hash=AuthService.get_password_hash(password),
            is_active=True
        )
        db.add(user)
        db.flush()
        
        db.add(Profile(
            id=user.id,
            full_name=full_name,
            email=email,
            avatar_url=avatar_url
        ))
        db.add(UserRole(user_id=user.id, role=DEFAULT_ROLE))
        db.flush()
        
        logger.info(f"Identity created: {user.id} ({email})")
        return user
    
    @staticmethod
    def delete_identity(db: Session, user_id: int) -> None:
        """Remove an identity and every row that hangs off it (no commit)."""
        db.query(ManagerUnit).filter(ManagerUnit.user_id == user_id).delete(synchronize_session=False)
        db.query(UserRole).filter(UserRole.user_id == user_id).delete(synchronize_session=False)
        db.query(Profile).filter(Profile.id == user_id).delete(synchronize_session=False)
        db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
        db.flush()
        
        logger.info(f"Identity deleted: {user_id}")

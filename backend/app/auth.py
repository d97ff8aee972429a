"""
Oakline Admin - Authentication Utilities
Bearer tokens issued by the identity provider, verified against admin_profiles
"""
import os
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from .database import get_db
from .models.db_models import AdminProfileDB

# Configuration
SECRET_KEY = os.getenv("IDENTITY_JWT_SECRET", "oakline-admin-secret-key-change-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_HOURS = 1

SUPER_ADMIN_ROLE = "super_admin"

# Bearer token security
security = HTTPBearer()


def create_access_token(principal_id: str, email: str, expires_hours: int = ACCESS_TOKEN_EXPIRE_HOURS) -> str:
    """Create a token in the identity provider's format (operator tooling and tests)."""
    expire = datetime.utcnow() + timedelta(hours=expires_hours)
    to_encode = {
        "sub": principal_id,
        "email": email,
        "aud": "authenticated",
        "exp": expire
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Decode and validate a token signed with the identity provider secret."""
    try:
        payload = jwt.decode(
            token,
            SECRET_KEY,
            algorithms=[ALGORITHM],
            options={"verify_aud": False},
        )
        return payload
    except JWTError:
        return None


async def get_current_admin(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> AdminProfileDB:
    """
    Dependency to get the authenticated admin.
    Validates the bearer token and fetches the admin profile.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(credentials.credentials)
    if payload is None:
        raise credentials_exception

    principal_id: str = payload.get("sub")
    if principal_id is None:
        raise credentials_exception

    admin = db.query(AdminProfileDB).filter(AdminProfileDB.id == principal_id).first()
    if admin is None:
        raise credentials_exception

    return admin


async def require_admin(current_admin: AdminProfileDB = Depends(get_current_admin)) -> AdminProfileDB:
    """
    Dependency to require an active admin profile.
    Use this on every admin route.
    """
    if not current_admin.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_admin

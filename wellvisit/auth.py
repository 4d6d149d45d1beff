import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .models import ROLE_ADMIN, ROLE_STAFF, User
from .security_utils import create_jwt_token, verify_jwt_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def create_access_token(user: User) -> str:
    """Issue a bearer token for a user"""
    return create_jwt_token({"sub": str(user.id), "role": user.role})


def resolve_user_from_token(db: Session, token: str) -> Optional[User]:
    """Decode a bearer token and load its active user, or None"""
    payload = verify_jwt_token(token)
    if not payload or not payload.get("sub"):
        return None

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        logger.warning(f"⚠️ Token subject is not a user id: {payload.get('sub')}")
        return None

    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        return None
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from the bearer token"""

    if not credentials:
        logger.warning("❌ No credentials provided")
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    token = credentials.credentials

    # Basic token format validation before processing
    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received, token length: {len(token)}")
        raise HTTPException(
            status_code=401, detail="Invalid token format. Expected a valid JWT token."
        )

    user = resolve_user_from_token(db, token)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    logger.debug(f"✅ User authenticated: {user.email} ({user.role})")
    return user


def require_roles(*roles: str):
    """
    Create a dependency that only lets the given roles through.

    Example usage:
        @router.get("/dashboard")
        async def dashboard(user: User = Depends(require_roles("staff", "admin"))):
            ...
    """

    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            logger.warning(
                f"🚫 User {current_user.id} with role {current_user.role} denied (requires {roles})"
            )
            raise HTTPException(status_code=403, detail="You do not have access to this resource")
        return current_user

    return role_checker


def is_staff(user: User) -> bool:
    return user.role in (ROLE_STAFF, ROLE_ADMIN)

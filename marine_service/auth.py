import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .models import User
from .security_utils import verify_jwt_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def _user_from_token(token: str, db: Session) -> User:
    """Resolve a bearer token to an active user or raise 401"""
    # Basic token format validation before processing
    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received, length: {len(token)}")
        raise HTTPException(
            status_code=401, detail="Invalid token format. Expected a valid JWT token."
        )

    payload = verify_jwt_token(token)
    if not payload or not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Not authorized, token failed")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError) as e:
        logger.error(f"❌ Token carries a non-numeric subject: {payload.get('sub')!r}")
        raise HTTPException(status_code=401, detail="Invalid token claims") from e

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_active:
        logger.warning(f"⚠️ Inactive account attempted access: {user.email}")
        raise HTTPException(status_code=401, detail="Account is deactivated")

    logger.debug(f"✅ User authenticated: {user.email}")
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from the bearer JWT"""
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )
    return _user_from_token(credentials.credentials, db)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """
    Public endpoints that personalise their result when a token is present.
    An invalid token is treated like no token.
    """
    if not credentials:
        return None
    try:
        return _user_from_token(credentials.credentials, db)
    except HTTPException:
        logger.info("ℹ️ Ignoring invalid token on public endpoint")
        return None


def require_roles(*roles: str):
    """
    Create a dependency that only lets users with one of the given roles through.

    Example usage:
        @router.get("/admin/payments")
        async def list_payments(current_user: User = Depends(require_roles("admin"))):
            ...
    """

    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            logger.warning(
                f"⚠️ User {current_user.email} with role '{current_user.role}' denied, requires {roles}"
            )
            raise HTTPException(
                status_code=403,
                detail=f"User role '{current_user.role}' is not authorized to access this route",
            )
        return current_user

    return role_checker


require_staff = require_roles("employee", "admin")
require_admin = require_roles("admin")
require_customer = require_roles("customer")

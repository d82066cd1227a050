import logging
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from .database import get_db
from .errors import AuthenticationError, ForbiddenError
from .models import User

logger = logging.getLogger(__name__)


async def get_current_user(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the acting user from the identity header set by the gateway"""

    if not x_user_id:
        logger.warning("⚠️ Request without X-User-Id header")
        raise AuthenticationError("Not authenticated. Provide the X-User-Id header.")

    try:
        user_id = int(x_user_id)
    except ValueError:
        logger.warning(f"⚠️ Malformed X-User-Id header: '{x_user_id[:20]}'")
        raise AuthenticationError("Invalid user identity") from None

    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        logger.warning(f"⚠️ Unknown or inactive user {user_id}")
        raise AuthenticationError("Unknown or inactive user")

    logger.debug(f"✅ User authenticated: {user.id} ({user.role})")
    return user


def require_roles(*roles: str):
    """Dependency factory that only lets users with one of ``roles`` through"""

    async def checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            logger.warning(f"⚠️ User {user.id} ({user.role}) denied, requires {', '.join(roles)}")
            raise ForbiddenError(f"This action requires role: {' or '.join(roles)}")
        return user

    return checker

"""JWT utilities for the authentication boundary.

Responsibilities:
- Create HS256-signed access tokens carrying `user_id` with an expiry.
- Resolve the current user from a bearer token, or fail with 401.

Login itself happens outside this service; `create_access_token` is what the
login service (and the tests) use to mint tokens.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from archetypeos.core.config import settings
from archetypeos.core.database import get_db
from archetypeos.core.exceptions import AuthenticationException, InvalidTokenException
from archetypeos.modules.users.models import User

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="login", auto_error=False)


# ============================================
# Token Creation Function
# ============================================
def create_access_token(data: dict, expires_minutes: Optional[int] = None) -> str:
    """Create a JWT access token; `user_id` is normalized to int."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes or settings.access_token_expire_minutes
    )
    to_encode.update({"exp": expire})

    if "user_id" in to_encode:
        try:
            to_encode["user_id"] = int(to_encode["user_id"])
        except (TypeError, ValueError):
            logger.error(f"Invalid user_id format: {to_encode['user_id']}")
            raise ValueError("Invalid user_id format")

    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


# ============================================
# Token Verification Function
# ============================================
def verify_access_token(token: str) -> int:
    """Return the user id carried by `token` or raise InvalidTokenException."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as e:
        logger.info(f"JWT Error: {str(e)}")
        raise InvalidTokenException()

    user_id = payload.get("user_id")
    if user_id is None:
        logger.warning("User ID not found in token payload")
        raise InvalidTokenException()
    try:
        return int(user_id)
    except (TypeError, ValueError):
        logger.warning(f"Invalid user_id in token payload: {user_id}")
        raise InvalidTokenException()


# ============================================
# Current User Retrieval Function
# ============================================
def get_current_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Return the authenticated user and expose it on `request.state.user`."""
    if not token:
        raise AuthenticationException()

    user_id = verify_access_token(token)
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise InvalidTokenException()

    request.state.user = user
    return user


__all__ = ["create_access_token", "get_current_user", "oauth2_scheme", "verify_access_token"]

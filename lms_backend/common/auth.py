"""
Authentication dependencies for the LMS assessment API.

Callers identify themselves with ``Authorization: Bearer <user-id>``. Token
verification happens upstream of this service; the bearer value is taken as
the user id.
"""

from typing import Optional

from fastapi import Depends, Header, Request

from lms_backend.common.exceptions import AuthenticationError, AuthorizationError
from lms_backend.common.logger import app_logger

logger = app_logger.getChild("auth")


async def get_current_user_id(authorization: Optional[str] = Header(None)) -> str:
    """
    Get the current user ID from the authorization header.

    Raises:
        AuthenticationError: If the header is missing or malformed
    """
    if not authorization:
        raise AuthenticationError("Missing authorization header")

    parts = authorization.split()
    if len(parts) != 2:
        raise AuthenticationError("Invalid authorization header format")

    scheme, token = parts
    if scheme.lower() != "bearer":
        raise AuthenticationError("Invalid authentication scheme")

    return token


async def require_admin(request: Request, user_id: str = Depends(get_current_user_id)) -> str:
    """
    Ensure the caller is one of the configured administrators.

    Raises:
        AuthorizationError: If the caller is not an administrator
    """
    admin_ids = request.app.state.settings.admin_user_ids
    if user_id not in admin_ids:
        logger.info(f"Rejected admin request from {user_id}")
        raise AuthorizationError("Administrator access required", resource=request.url.path, action="admin")
    return user_id

from fastapi import Request
from typing import Optional
import logging
from auth import decode_access_token
from idcards.errors import UnauthenticatedError

logger = logging.getLogger(__name__)


async def get_current_user(request: Request) -> Optional[dict]:
    """Extract and validate current user from JWT token."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None

    token = auth_header.split(" ")[1]
    return decode_access_token(token)


async def require_auth(request: Request) -> dict:
    """Require valid authentication."""
    user = await get_current_user(request)
    if not user:
        logger.warning(f"Unauthenticated request to {request.url.path}")
        raise UnauthenticatedError("Not authenticated")
    return user

"""
FastAPI dependencies for authentication.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from travel_journal.utils.exceptions import AuthError


security = HTTPBearer(auto_error=False)


async def get_current_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """Dependency returning the user id of a valid bearer token"""
    if credentials is None or not credentials.credentials:
        raise AuthError("Access token is required")
    return request.app.state.auth_service.verify_token(credentials.credentials)


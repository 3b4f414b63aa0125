"""
Common dependencies for FastAPI routes.
"""

from typing import Optional
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from engagehub.core.config import get_settings
from engagehub.core.exceptions import ForbiddenException

# HTTP Bearer token security scheme
security = HTTPBearer()
security_optional = HTTPBearer(auto_error=False)


def _decode_token(token: str) -> Optional[dict]:
    """Decode JWT token. Import here to avoid circular imports."""
    from engagehub.auth.service import AuthService
    return AuthService.decode_token(token)


def _user_from_payload(payload: dict) -> dict:
    return {
        "id": payload["sub"],
        "email": payload.get("email"),
        "role": payload.get("role") or "user",
    }


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> dict:
    """
    Dependency to get the current authenticated user from JWT token.
    Returns user dict with 'id', 'email' and 'role'.
    """
    payload = _decode_token(credentials.credentials)

    if not payload or "sub" not in payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return _user_from_payload(payload)


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_optional)
) -> Optional[dict]:
    """
    Optional authentication - returns user if token is valid, None otherwise.
    """
    if not credentials:
        return None

    payload = _decode_token(credentials.credentials)
    if not payload or "sub" not in payload:
        return None

    return _user_from_payload(payload)


async def require_admin(
    x_admin_api_key: str = Header(default="", alias="X-ADMIN-API-KEY"),
    current_user: Optional[dict] = Depends(get_current_user_optional),
) -> dict:
    """
    Admin access via API key header or a token carrying role=admin.

    If ADMIN_API_KEY is not configured the header path is closed (fail closed).
    """
    settings = get_settings()
    expected = (settings.ADMIN_API_KEY or "").strip()
    provided = (x_admin_api_key or "").strip()

    if expected and provided == expected:
        return {"id": None, "email": None, "role": "admin", "via": "admin_api_key"}
    if current_user and current_user.get("role") == "admin":
        return current_user
    raise ForbiddenException("Admin only")

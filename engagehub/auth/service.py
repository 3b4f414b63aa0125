"""Token verification for requests coming from the auth service."""

from datetime import datetime, timedelta
from typing import Optional

import jwt

from engagehub.core.config import get_settings


class AuthService:
    """Verifies (and, for scripts and tests, issues) access tokens."""

    @staticmethod
    def create_access_token(user_id: str, email: str, role: str = "user", expires_minutes: int = 60) -> str:
        """Create a JWT access token."""
        settings = get_settings()
        expire = datetime.utcnow() + timedelta(minutes=expires_minutes)
        payload = {
            "sub": user_id,
            "email": email,
            "role": role,
            "exp": expire,
            "iat": datetime.utcnow(),
        }
        return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    @staticmethod
    def decode_token(token: str) -> Optional[dict]:
        """Decode and validate a JWT token."""
        settings = get_settings()
        try:
            payload = jwt.decode(
                token,
                settings.JWT_SECRET_KEY,
                algorithms=[settings.JWT_ALGORITHM]
            )
            return payload
        except jwt.ExpiredSignatureError:
            return None
        except jwt.InvalidTokenError:
            return None

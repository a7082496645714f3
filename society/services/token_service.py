"""
Token Service - issues and validates bearer tokens (HS256 JWT).
"""

import uuid
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt

from society.config import settings
from society.errors import AuthenticationError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


class TokenService:
    """Time-bounded bearer credentials carrying a user id in ``sub``."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        expire_minutes: Optional[int] = None,
    ):
        self.secret_key = secret_key or settings.secret_key
        self.expire_minutes = expire_minutes or settings.access_token_expire_minutes

    def issue(self, subject_id: uuid.UUID, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        claims = {
            "sub": str(subject_id),
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(minutes=self.expire_minutes)).timestamp()),
        }
        return jwt.encode(claims, self.secret_key, algorithm=ALGORITHM)

    def decode(self, token: str) -> uuid.UUID:
        """Return the subject id, or raise AuthenticationError."""
        try:
            claims = jwt.decode(token, self.secret_key, algorithms=[ALGORITHM])
        except ExpiredSignatureError:
            raise AuthenticationError("Not authorized, token expired")
        except JWTError as e:
            logger.info(f"Token verification error: {e}")
            raise AuthenticationError("Not authorized, token failed")

        try:
            return uuid.UUID(claims["sub"])
        except (KeyError, TypeError, ValueError):
            raise AuthenticationError("Not authorized, token failed")

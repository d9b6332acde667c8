"""
JWT token management for authentication.

Tokens are stateless signed claims. Verification checks the signature and,
when the token carries one, the expiry; it performs no I/O.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel, ValidationError

from agritrack.config import get_settings
from agritrack.errors import AuthExpired, AuthInvalid


class TokenClaims(BaseModel):
    """Decoded access token claims."""

    sub: str  # User ID
    email: str
    role: str
    iat: datetime
    exp: Optional[datetime] = None
    jti: str  # Token ID for revocation tracking


class TokenService:
    """
    JWT token issuing and verification.

    ``expire_minutes`` of 0 (or None) issues tokens without an ``exp`` claim.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        expire_minutes: Optional[int] = None,
    ):
        settings = get_settings()
        self.secret_key = secret_key or settings.secret_key
        self.algorithm = algorithm or settings.algorithm
        self.expire_minutes = (
            settings.access_token_expire_minutes if expire_minutes is None else expire_minutes
        )

    def issue(
        self,
        user_id: uuid.UUID,
        email: str,
        role: str,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """
        Create a signed access token.

        Args:
            user_id: User's unique identifier
            email: User's email
            role: User's role
            expires_delta: Optional custom lifetime, overrides the configured one

        Returns:
            Encoded token
        """
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "email": email,
            "role": role,
            "iat": now,
            "jti": str(uuid.uuid4()),
        }
        if expires_delta is not None:
            payload["exp"] = now + expires_delta
        elif self.expire_minutes:
            payload["exp"] = now + timedelta(minutes=self.expire_minutes)

        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Verify and decode an access token.

        Raises:
            AuthExpired: the token is past its ``exp``
            AuthInvalid: bad signature, malformed token or missing claims
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
            )
        except ExpiredSignatureError:
            raise AuthExpired()
        except JWTError:
            raise AuthInvalid()

        try:
            return TokenClaims(
                sub=payload["sub"],
                email=payload["email"],
                role=payload["role"],
                iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                exp=(
                    datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
                    if "exp" in payload else None
                ),
                jti=payload["jti"],
            )
        except (KeyError, TypeError, ValueError, ValidationError):
            raise AuthInvalid()


# Default service instance
_token_service: Optional[TokenService] = None


def get_token_service() -> TokenService:
    """Get or create the process-wide token service."""
    global _token_service
    if _token_service is None:
        _token_service = TokenService()
    return _token_service

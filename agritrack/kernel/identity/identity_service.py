"""
Identity service for signup, login and token revocation.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from agritrack.errors import AlreadyExists, InvalidCredential, StorageFailure, UserNotFound
from agritrack.kernel.identity.jwt import TokenClaims, TokenService, get_token_service
from agritrack.kernel.identity.password import hash_password_async, verify_password_async
from agritrack.kernel.models.user import RevokedToken, User
from agritrack.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Identity:
    """Verified caller identity, taken verbatim from token claims."""

    user_id: str
    email: str
    role: str
    token_id: str
    expires_at: Optional[datetime] = None

    @classmethod
    def from_claims(cls, claims: TokenClaims) -> "Identity":
        return cls(
            user_id=claims.sub,
            email=claims.email,
            role=claims.role,
            token_id=claims.jti,
            expires_at=claims.exp,
        )


@dataclass(frozen=True)
class LoginResult:
    token: str
    role: str


def normalize_email(email: str) -> str:
    return email.lower().strip()


class IdentityService:
    """
    Service for user identity operations.

    Handles registration, authentication and server-side token revocation.
    """

    def __init__(self, session: AsyncSession, token_service: Optional[TokenService] = None):
        self.session = session
        self.token_service = token_service or get_token_service()

    async def signup(self, name: str, email: str, password: str, role: str) -> str:
        """
        Register a new user and issue a token for it.

        The lookup before insert only short-circuits the common case; the
        unique index on ``users.email`` decides concurrent signups.

        Raises:
            AlreadyExists: the email is already registered
            StorageFailure: any other database error
        """
        email = normalize_email(email)
        if await self.get_user_by_email(email) is not None:
            raise AlreadyExists()

        user = User(
            email=email,
            name=name.strip(),
            role=role.strip(),
            password_hash=await hash_password_async(password),
        )
        self.session.add(user)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            logger.info("Signup lost race on unique email", extra={"email": email})
            raise AlreadyExists()
        except SQLAlchemyError:
            await self.session.rollback()
            logger.exception("Failed to insert user", extra={"email": email})
            raise StorageFailure()

        logger.info("User registered", extra={"user_id": str(user.id), "role": user.role})
        return self.token_service.issue(user.id, user.email, user.role)

    async def login(self, email: str, password: str) -> LoginResult:
        """
        Authenticate by email and password.

        Raises:
            UserNotFound: no user with this email
            InvalidCredential: password does not match
        """
        user = await self.get_user_by_email(email)
        if user is None:
            raise UserNotFound()

        if not await verify_password_async(password, user.password_hash):
            raise InvalidCredential()

        token = self.token_service.issue(user.id, user.email, user.role)
        logger.info("User logged in", extra={"user_id": str(user.id)})
        return LoginResult(token=token, role=user.role)

    async def revoke(self, identity: Identity) -> None:
        """
        Put the presented token on the revocation list.

        Entries whose token has expired are dropped first; the token service
        already rejects those tokens as expired before the list is consulted.
        """
        await self.prune_revocations()
        if await self.is_revoked(identity.token_id):
            await self.session.commit()
            return

        self.session.add(RevokedToken(
            jti=identity.token_id,
            user_id=uuid.UUID(identity.user_id),
            expires_at=identity.expires_at,
        ))
        try:
            await self.session.commit()
        except IntegrityError:
            # Concurrent logout with the same token already recorded it
            await self.session.rollback()
        logger.info("Token revoked", extra={"user_id": identity.user_id})

    async def prune_revocations(self, now: Optional[datetime] = None) -> int:
        """Delete revocation entries for tokens past their expiry. Tokens without exp are kept."""
        now = now or datetime.now(timezone.utc)
        result = await self.session.execute(
            delete(RevokedToken).where(RevokedToken.expires_at < now)
        )
        return result.rowcount or 0

    async def is_revoked(self, token_id: str) -> bool:
        query = select(RevokedToken.jti).where(RevokedToken.jti == token_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none() is not None

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get a user by email."""
        query = select(User).where(User.email == normalize_email(email))
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

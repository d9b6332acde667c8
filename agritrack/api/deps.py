"""
FastAPI dependencies for authentication, database sessions and the
process-wide collaborators.
"""

from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from agritrack.database import get_db
from agritrack.engines.forecast.prediction_client import PredictionClient, get_prediction_client
from agritrack.errors import AuthExpired, AuthInvalid, AuthMissing, StorageFailure
from agritrack.kernel.identity.identity_service import Identity, IdentityService
from agritrack.kernel.identity.jwt import TokenService, get_token_service
from agritrack.kernel.storage.artifact_store import ArtifactStore, get_artifact_store
from agritrack.logging_config import get_logger

logger = get_logger(__name__)

# Security scheme; errors are raised by the gate so it can tell missing from malformed
security = HTTPBearer(auto_error=False)


DbSession = Annotated[AsyncSession, Depends(get_db)]
Tokens = Annotated[TokenService, Depends(get_token_service)]
Artifacts = Annotated[ArtifactStore, Depends(get_artifact_store)]
Predictions = Annotated[PredictionClient, Depends(get_prediction_client)]


def extract_bearer_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> str:
    """
    Pull the bearer token out of the Authorization header.

    Raises:
        AuthMissing: no Authorization header (or an empty one)
        AuthInvalid: header present but not ``Bearer <token>``
    """
    if credentials is not None and credentials.credentials:
        return credentials.credentials

    header = request.headers.get("Authorization", "").strip()
    if not header:
        raise AuthMissing()
    raise AuthInvalid("Authorization header must be 'Bearer <token>'.")


async def get_current_identity(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    tokens: Tokens,
    db: DbSession,
) -> Identity:
    """
    Authorization gate for protected routes.

    Verifies the bearer token once and attaches the resulting identity to
    ``request.state.identity``. Never falls back to a default identity.
    """
    token = extract_bearer_token(request, credentials)
    claims = tokens.verify(token)

    try:
        revoked = await IdentityService(db, tokens).is_revoked(claims.jti)
    except SQLAlchemyError:
        logger.exception("Revocation lookup failed", extra={"user_id": claims.sub})
        raise StorageFailure()

    if revoked:
        logger.info("Rejected revoked token", extra={"user_id": claims.sub})
        raise AuthInvalid("Token has been revoked.")

    identity = Identity.from_claims(claims)
    request.state.identity = identity
    return identity


async def get_optional_identity(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    tokens: Tokens,
) -> Optional[Identity]:
    """Identity for the presented token, or None. Used where auth is best-effort."""
    if credentials is None or not credentials.credentials:
        return None
    try:
        return Identity.from_claims(tokens.verify(credentials.credentials))
    except (AuthExpired, AuthInvalid):
        return None


CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]
OptionalIdentity = Annotated[Optional[Identity], Depends(get_optional_identity)]

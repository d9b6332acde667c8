"""
Authentication endpoints.
"""

from fastapi import APIRouter

from agritrack.api.deps import DbSession, OptionalIdentity, Tokens
from agritrack.errors import InvalidCredential, UserNotFound
from agritrack.kernel.identity.identity_service import IdentityService
from agritrack.logging_config import get_logger
from agritrack.schemas.auth import LoginRequest, LoginResponse, SignupRequest, SignupResponse
from agritrack.schemas.common import ErrorResponse, MessageResponse

router = APIRouter()
logger = get_logger(__name__)


@router.post(
    "/signup",
    response_model=SignupResponse,
    responses={401: {"model": ErrorResponse}},
)
async def signup(data: SignupRequest, db: DbSession, tokens: Tokens):
    """
    Register a new user account.

    Returns a bearer token for the new identity.
    """
    identity_service = IdentityService(db, tokens)
    token = await identity_service.signup(
        name=data.name,
        email=data.email,
        password=data.password,
        role=data.role,
    )
    return SignupResponse(token=token)


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"model": ErrorResponse}},
)
async def login(data: LoginRequest, db: DbSession, tokens: Tokens):
    """
    Authenticate user and return a token with the user's role.

    Unknown email and wrong password produce the same response.
    """
    identity_service = IdentityService(db, tokens)
    try:
        result = await identity_service.login(email=data.email, password=data.password)
    except (UserNotFound, InvalidCredential) as e:
        logger.info("Login rejected: %s", type(e).__name__)
        raise InvalidCredential("Invalid email or password.")

    return LoginResponse(token=result.token, role=result.role)


@router.get("/logout", response_model=MessageResponse)
async def logout(identity: OptionalIdentity, db: DbSession, tokens: Tokens):
    """
    Log out.

    Clients must discard their token. A valid token presented here is also
    put on the revocation list, so the gate rejects it from now on.
    """
    if identity is not None:
        await IdentityService(db, tokens).revoke(identity)
    return MessageResponse(message="You have been logged out.")

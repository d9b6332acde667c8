"""
Identity Core - credentials, bearer tokens and revocation.
"""

from agritrack.kernel.identity.password import (
    PasswordHasher,
    hash_password,
    hash_password_async,
    verify_password,
    verify_password_async,
)
from agritrack.kernel.identity.jwt import TokenClaims, TokenService, get_token_service
from agritrack.kernel.identity.identity_service import Identity, IdentityService, LoginResult

__all__ = [
    "PasswordHasher",
    "hash_password",
    "hash_password_async",
    "verify_password",
    "verify_password_async",
    "TokenClaims",
    "TokenService",
    "get_token_service",
    "Identity",
    "IdentityService",
    "LoginResult",
]

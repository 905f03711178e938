"""Security: JWT tokens and password hashing."""

from app.infrastructure.security.jwt import (
    TokenClaims,
    create_access_token,
    create_client_token,
    create_user_token,
    verify_token,
)
from app.infrastructure.security.password import (
    BcryptPasswordHasher,
    get_password_hash,
    verify_password,
)

__all__ = [
    "BcryptPasswordHasher",
    "TokenClaims",
    "create_access_token",
    "create_client_token",
    "create_user_token",
    "get_password_hash",
    "verify_password",
    "verify_token",
]

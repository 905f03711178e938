"""JWT bearer tokens for staff users and client portal accounts.

Claims: sub (user or client id), kind ("user" | "client"), role (users
only), exp. Secret, algorithm and lifetimes come from app.core.config.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, cast

from jose import JWTError, jwt

from app.core.config import get_settings
from app.shared.enums import ActorType

TOKEN_KINDS = (ActorType.USER.value, ActorType.CLIENT.value)


@dataclass(frozen=True)
class TokenClaims:
    subject: str
    kind: str
    role: str | None = None


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT with the given claims; default TTL is access_token_expire_minutes."""
    settings = get_settings()
    to_encode = data.copy()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = datetime.now(UTC) + expires_delta
    encoded = jwt.encode(
        to_encode,
        settings.secret_key.get_secret_value(),
        algorithm=settings.algorithm,
    )
    return cast(str, encoded)


def create_user_token(user_id: str, role: str) -> str:
    return create_access_token(
        {"sub": user_id, "kind": ActorType.USER.value, "role": role}
    )


def create_client_token(client_id: str) -> str:
    settings = get_settings()
    return create_access_token(
        {"sub": client_id, "kind": ActorType.CLIENT.value},
        expires_delta=timedelta(minutes=settings.client_token_expire_minutes),
    )


def verify_token(token: str) -> TokenClaims:
    """Verify and decode a JWT.

    Raises:
        ValueError: If the token is invalid, expired, or missing sub/kind.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.secret_key.get_secret_value(),
            algorithms=[settings.algorithm],
            options={"require_exp": True, "require_sub": True},
        )
    except JWTError as e:
        raise ValueError(f"Invalid token: {e!s}") from e
    kind = payload.get("kind")
    if kind not in TOKEN_KINDS:
        raise ValueError("Token missing required claim: kind")
    return TokenClaims(subject=payload["sub"], kind=kind, role=payload.get("role"))

"""Password hashing (bcrypt with SHA-256 pre-hash).

Used for staff passwords and client portal access passwords. Bcrypt
truncates inputs at 72 bytes; pre-hashing with SHA-256 yields a
fixed-length input so long passwords are not silently truncated.
"""

import base64
import hashlib

import bcrypt


def _prehash(password: str) -> bytes:
    return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest())


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Return True if plain_password matches hashed_password (False on a malformed hash)."""
    try:
        return bool(
            bcrypt.checkpw(_prehash(plain_password), hashed_password.encode("utf-8"))
        )
    except (ValueError, TypeError):
        return False


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(_prehash(password), bcrypt.gensalt()).decode("utf-8")


class BcryptPasswordHasher:
    """IPasswordHasher implementation.

    verify_unknown() burns one bcrypt check against a fixed hash so that a
    login for a non-existent account costs the same as a wrong password.
    """

    def __init__(self) -> None:
        self._dummy_hash: str | None = None

    def hash_password(self, password: str) -> str:
        return get_password_hash(password)

    def verify_password(self, password: str, hashed: str) -> bool:
        return verify_password(password, hashed)

    def verify_unknown(self, password: str) -> bool:
        if self._dummy_hash is None:
            self._dummy_hash = get_password_hash("not-a-real-password")
        verify_password(password, self._dummy_hash)
        return False

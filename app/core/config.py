"""taskflow settings, read from the environment and an optional .env file.

The memory backend needs nothing but SECRET_KEY. The firestore backend also
needs a service account, given either inline or as a file path.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DATABASE_BACKENDS = ("memory", "firestore")


def _is_set(secret: SecretStr | None) -> bool:
    return bool(secret and secret.get_secret_value())


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: str = "taskflow"
    app_version: str = "1.0.0"
    debug: bool = False

    database_backend: str = "firestore"
    firebase_service_account_key: SecretStr | None = None  # full JSON
    firebase_service_account_path: str | None = None

    secret_key: SecretStr = SecretStr("")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 8 * 60
    client_token_expire_minutes: int = 24 * 60

    allowed_origins: str = "http://localhost:3000,http://localhost:5173"
    request_id_header: str = "X-Request-ID"
    # Attachments are stored as URLs, so bodies stay small.
    max_request_size: int = 10 * 1024 * 1024

    notifications_enabled: bool = True

    # Ensured at startup when both are set.
    bootstrap_admin_email: str | None = None
    bootstrap_admin_password: SecretStr | None = None

    @model_validator(mode="after")
    def validate_required(self) -> "Settings":
        if self.database_backend not in DATABASE_BACKENDS:
            raise ValueError(
                f"database_backend must be one of {DATABASE_BACKENDS}, got {self.database_backend!r}"
            )
        if (
            self.database_backend == "firestore"
            and not _is_set(self.firebase_service_account_key)
            and not self.firebase_service_account_path
        ):
            raise ValueError(
                "The firestore backend needs FIREBASE_SERVICE_ACCOUNT_KEY (JSON string) "
                "or FIREBASE_SERVICE_ACCOUNT_PATH (JSON file)."
            )
        if not _is_set(self.secret_key):
            raise ValueError("SECRET_KEY is required (e.g. openssl rand -hex 32).")
        if min(self.access_token_expire_minutes, self.client_token_expire_minutes) <= 0:
            raise ValueError("Token lifetimes must be positive")
        return self

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """Cached Settings; tests call get_settings.cache_clear() after changing the env."""
    return Settings()

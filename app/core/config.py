from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from the project root so it loads regardless of cwd
_BACKEND_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _BACKEND_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str
    database_ssl: bool = False
    # Create tables on startup instead of running Alembic (development only)
    auto_create_tables: bool = False

    # JWT
    secret_key: str
    access_token_expire_minutes: int = 7 * 24 * 60
    algorithm: str = "HS256"

    # Session cookie
    cookie_name: str = "access_token"
    cookie_samesite: str = "lax"
    cookie_domain: str | None = None

    # Password hashing
    bcrypt_rounds: int = 10

    # CORS
    cors_origins: str = "http://localhost:3001"

    # Google sign-in (ID token audience)
    google_client_id: str = ""

    # Env
    env: str = "development"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def cookie_secure(self) -> bool:
        return self.env == "production"

    @property
    def access_token_max_age(self) -> int:
        """Token lifetime in seconds (cookie max-age and expires_in)."""
        return self.access_token_expire_minutes * 60

    @property
    def google_enabled(self) -> bool:
        return bool(self.google_client_id)


settings = Settings()

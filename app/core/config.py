from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Family Tree API"
    app_env: str = "dev"
    log_level: str = "INFO"
    port: int = 3001
    api_prefix: str = "api"
    api_version: str = "v1"
    app_url: str = "http://localhost:3001"
    frontend_url: str = "http://localhost:3000"
    cors_allow_origins: str = ""
    database_url: str = "sqlite+aiosqlite:///./family_tree.db"
    secret_key: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_expires_in: str = "7d"
    refresh_token_expires_in: str = "30d"
    invitation_secret: str = "change-me-invitations"
    invitation_expires_in: str = "7d"
    throttle_ttl: int = 60
    throttle_limit: int = 20
    upload_dir: str = "uploads"
    max_upload_mb: int = 10

    @property
    def api_root(self) -> str:
        parts = [x.strip("/") for x in (self.api_prefix, self.api_version) if x.strip("/")]
        return "/" + "/".join(parts) if parts else ""

    @property
    def cors_origins(self) -> list[str]:
        origins = [x.strip() for x in self.cors_allow_origins.split(",") if x.strip()]
        if self.frontend_url and self.frontend_url not in origins:
            origins.append(self.frontend_url)
        return origins


_DURATION_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400, "w": 604800}


def parse_duration(value: str | int, default_seconds: int = 7 * 86400) -> int:
    """Convert "7d" / "12h" / "30m" / "45s" / "2w" or a bare number of seconds."""
    if isinstance(value, int):
        return value
    raw = str(value or "").strip().lower()
    if not raw:
        return default_seconds
    if raw.isdigit():
        return int(raw)
    unit = raw[-1]
    amount = raw[:-1]
    if unit not in _DURATION_UNITS or not amount.isdigit():
        return default_seconds
    return int(amount) * _DURATION_UNITS[unit]


@lru_cache
def get_settings() -> Settings:
    return Settings()

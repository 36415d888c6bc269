from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # ─────────── APP ───────────
    app_name: str = "College Notes"
    environment: str = "dev"
    log_level: str = "INFO"

    # ─────────── API ───────────
    api_prefix: str = "/api/v1"
    request_id_header: str = "X-Request-Id"

    # ─────────── DATABASE ───────────
    database_url: str

    # ─────────── JWT / AUTH ───────────
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    jwt_access_token_minutes: int = 1440  # 24 hours

    # ─────────── OBJECT STORE (S3) ───────────
    aws_region: str = "us-east-1"
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    s3_bucket_name: str = "college-notes-bucket"
    s3_endpoint_url: Optional[str] = None
    presign_ttl_seconds: int = 3600
    # pending objects younger than this are never treated as orphans
    reconcile_grace_seconds: int = 3600

    # ─────────── PUSH NOTIFICATIONS ───────────
    sse_keepalive_seconds: float = 25.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()

from typing import List
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_JWT_SECRET = "change-me-dev"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Core
    log_level: str = "INFO"
    service_env: str = "dev"  # dev|prod
    server_public_url: str = "http://localhost:8080"

    # DB
    db_url: str = "sqlite:///./yummio.db"

    # Auth
    jwt_secret: str = DEV_JWT_SECRET
    jwt_access_expire_minutes: int = 24 * 60
    jwt_refresh_expire_minutes: int = 7 * 24 * 60
    jwt_reset_expire_minutes: int = 60
    bcrypt_cost: int = 12

    # CORS
    cors_allow_origins: str = "*"
    cors_allow_credentials: bool = True
    cors_allow_methods: str = "GET,POST,PUT,PATCH,DELETE,OPTIONS"
    cors_allow_headers: str = "Origin,Content-Type,Accept,Authorization"

    # Rate limiting (token bucket por cliente)
    rate_limit_requests: int = 100
    rate_limit_window_s: float = 3600.0
    rate_limit_idle_s: float = 180.0

    # Size limit
    max_body_bytes: int = 12 * 1024 * 1024

    # Uploads
    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_image_types: str = "jpg,jpeg,png,webp"

    # S3 (blob store)
    s3_bucket: str = ""
    s3_region: str = "us-east-1"
    s3_endpoint: str = ""
    s3_access_key_id: str = ""
    s3_secret_access_key: str = ""
    s3_public_base_url: str = ""

    def parsed_allowed_image_types(self) -> List[str]:
        return [t.strip().lower().lstrip(".") for t in self.allowed_image_types.split(",") if t.strip()]

    @staticmethod
    def _split(value: str) -> List[str]:
        if value.strip() == "*":
            return ["*"]
        return [v.strip() for v in value.split(",") if v.strip()]

    def parsed_cors_origins(self) -> List[str]:
        return self._split(self.cors_allow_origins)

    def parsed_cors_methods(self) -> List[str]:
        return self._split(self.cors_allow_methods)

    def parsed_cors_headers(self) -> List[str]:
        return self._split(self.cors_allow_headers)

    @model_validator(mode="after")
    def _validate_security(self) -> "Settings":
        if self.service_env != "dev":
            if self.jwt_secret == DEV_JWT_SECRET:
                raise ValueError("jwt_secret must be set via environment variable in non-dev environments")
            if self.bcrypt_cost < 12:
                raise ValueError("bcrypt_cost must be at least 12 outside development")
        if self.rate_limit_requests < 1 or self.rate_limit_window_s <= 0:
            raise ValueError("rate limit must allow at least one request per positive window")
        return self


settings = Settings()

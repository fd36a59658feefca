import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


def _as_bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


DEFAULT_JWT_SECRET = "change-me"


@dataclass
class Settings:
    port: int = 3000
    mongo_url: str = "mongodb://localhost:27017"
    db_name: str = "social"
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_expires_minutes: int = 1440
    # reproduce the original post handler contract (full collection responses, no-op likes)
    legacy_api: bool = False
    asset_storage: str = "local"
    assets_dir: str = "public/assets"
    s3_bucket_name: Optional[str] = None
    aws_region: str = "us-east-2"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    max_body_mb: int = 30
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment (and .env, if present)"""
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            port=int(os.getenv("PORT", 3000)),
            mongo_url=os.getenv("MONGO_URL", "mongodb://localhost:27017"),
            db_name=os.getenv("DB_NAME", "social"),
            jwt_secret=os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET),
            jwt_expires_minutes=int(os.getenv("JWT_EXPIRES_MINUTES", 1440)),
            legacy_api=_as_bool(os.getenv("LEGACY_API")),
            asset_storage=os.getenv("ASSET_STORAGE", "local").lower(),
            assets_dir=os.getenv("ASSETS_DIR", "public/assets"),
            s3_bucket_name=os.getenv("S3_BUCKET_NAME"),
            aws_region=os.getenv("AWS_REGION", "us-east-2"),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            max_body_mb=int(os.getenv("MAX_BODY_MB", 30)),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    def validate(self):
        """Raise ValueError for settings the service must not start with"""
        if not self.legacy_api and self.jwt_secret in ("", DEFAULT_JWT_SECRET):
            raise ValueError("JWT_SECRET must be set to a private value unless LEGACY_API is on")


settings = Settings.from_env()

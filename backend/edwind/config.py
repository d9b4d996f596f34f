"""Application settings and validation."""

import os
from pathlib import Path

BASE = Path(__file__).resolve().parent.parent


class Settings:
    ENV: str
    LOG_LEVEL: str
    DATABASE_URL: str
    WORKOS_API_KEY: str
    WORKOS_CLIENT_ID: str
    WORKOS_API_BASE: str
    IDENTITY_TIMEOUT_SECONDS: float
    ALLOW_INSECURE_JWT: bool
    ALLOW_DEV_CORS: bool
    MAX_UPLOAD_BYTES: int
    GOOGLE_MAPS_API_KEY: str
    R2_BUCKET: str

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
        self.DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE / 'edwind.db'}")
        self.WORKOS_API_KEY = os.getenv("WORKOS_API_KEY", "")
        self.WORKOS_CLIENT_ID = os.getenv("WORKOS_CLIENT_ID", "")
        self.WORKOS_API_BASE = os.getenv("WORKOS_API_BASE", "https://api.workos.com").rstrip("/")
        self.IDENTITY_TIMEOUT_SECONDS = float(os.getenv("IDENTITY_TIMEOUT_SECONDS", "10"))
        self.ALLOW_INSECURE_JWT = os.getenv("ALLOW_INSECURE_JWT", "false").lower() == "true"
        self.ALLOW_DEV_CORS = os.getenv("ALLOW_DEV_CORS", "true").lower() == "true"
        self.MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(2 * 1024 * 1024)))  # 2 MB roster limit
        self.GOOGLE_MAPS_API_KEY = os.getenv("GOOGLE_MAPS_API_KEY", "")
        self.R2_BUCKET = os.getenv("R2_BUCKET", "")
        self._validate()

    @property
    def is_production(self) -> bool:
        return self.ENV in ("prod", "production")

    def _validate(self):
        if self.ENV not in ("dev", "test") and not self.ALLOW_INSECURE_JWT:
            if not self.WORKOS_API_KEY or not self.WORKOS_CLIENT_ID:
                raise RuntimeError("WORKOS_API_KEY and WORKOS_CLIENT_ID must be set in non-dev environments")


settings = Settings()

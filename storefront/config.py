"""
Application configuration, read from the environment (and a .env file) once
and handed to the app factory.
"""

import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel


class Settings(BaseModel):
    database_url: str = "sqlite:///./storefront.db"
    jwt_secret: str = "dev-secret-change-me"
    jwt_algorithm: str = "HS256"
    jwt_expires_minutes: int = 60 * 24
    bcrypt_rounds: int = 12
    upload_dir: str = "uploads"
    max_upload_bytes: int = 5 * 1024 * 1024
    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"

    admin_username: Optional[str] = None
    admin_email: Optional[str] = None
    admin_password: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        defaults = cls()
        origins = os.getenv("CORS_ORIGINS")
        return cls(
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            jwt_secret=os.getenv("JWT_SECRET", defaults.jwt_secret),
            jwt_expires_minutes=int(os.getenv("JWT_EXPIRES_MIN", defaults.jwt_expires_minutes)),
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", defaults.bcrypt_rounds)),
            upload_dir=os.getenv("UPLOAD_DIR", defaults.upload_dir),
            max_upload_bytes=int(os.getenv("MAX_UPLOAD_BYTES", defaults.max_upload_bytes)),
            cors_origins=[o.strip() for o in origins.split(",")] if origins else defaults.cors_origins,
            log_level=os.getenv("LOG_LEVEL", defaults.log_level),
            admin_username=os.getenv("ADMIN_USERNAME"),
            admin_email=os.getenv("ADMIN_EMAIL"),
            admin_password=os.getenv("ADMIN_PASSWORD"),
        )

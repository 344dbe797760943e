"""
Application configuration loaded from environment variables.

Supports switching between local and cloud PostgreSQL via DATABASE_MODE,
or an explicit DATABASE_URL (e.g. sqlite for development and tests).
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file from backend directory
backend_dir = Path(__file__).parent.parent
load_dotenv(backend_dir / ".env")


def _split_identities(raw: str) -> frozenset:
    return frozenset(part.strip() for part in raw.split(",") if part.strip())


class Config:
    """Application configuration."""

    # Flask settings
    DEBUG = os.getenv("FLASK_DEBUG", "0") == "1"
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

    # Explicit URL wins over DATABASE_MODE
    DATABASE_URL = os.getenv("DATABASE_URL", "")

    # Environment mode: "local" or "cloud"
    DATABASE_MODE = os.getenv("DATABASE_MODE", "local")

    # PostgreSQL - Local
    POSTGRES_HOST_LOCAL = os.getenv("POSTGRES_HOST_LOCAL", "localhost")
    POSTGRES_PORT_LOCAL = os.getenv("POSTGRES_PORT_LOCAL", "5432")
    POSTGRES_DB_LOCAL = os.getenv("POSTGRES_DB_LOCAL", "healthvault")
    POSTGRES_USER_LOCAL = os.getenv("POSTGRES_USER_LOCAL", "postgres")
    POSTGRES_PASSWORD_LOCAL = os.getenv("POSTGRES_PASSWORD_LOCAL", "")

    # PostgreSQL - Cloud
    POSTGRES_HOST_CLOUD = os.getenv("POSTGRES_HOST_CLOUD", "")
    POSTGRES_PORT_CLOUD = os.getenv("POSTGRES_PORT_CLOUD", "5432")
    POSTGRES_DB_CLOUD = os.getenv("POSTGRES_DB_CLOUD", "healthvault")
    POSTGRES_USER_CLOUD = os.getenv("POSTGRES_USER_CLOUD", "postgres")
    POSTGRES_PASSWORD_CLOUD = os.getenv("POSTGRES_PASSWORD_CLOUD", "")

    # Caller authentication (tokens are issued elsewhere, only verified here)
    JWT_SECRET = os.getenv("JWT_SECRET", "healthvault-secret-key-change-in-production")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

    # Identities allowed to verify providers and advance the logical clock
    ADMIN_IDENTITIES = _split_identities(os.getenv("ADMIN_IDENTITIES", ""))

    # Permission scope limits
    MAX_DATA_TYPES = int(os.getenv("MAX_DATA_TYPES", "20"))
    # Fixed: sizes the data_type column, so not overridable per deployment
    MAX_TAG_LENGTH = 64
    WILDCARD_DATA_TYPE = os.getenv("WILDCARD_DATA_TYPE", "all")

    @classmethod
    def get_database_url(cls) -> str:
        """Build the database URL from DATABASE_URL or DATABASE_MODE."""
        if cls.DATABASE_URL:
            return cls.DATABASE_URL

        if cls.DATABASE_MODE == "cloud":
            host = cls.POSTGRES_HOST_CLOUD
            port = cls.POSTGRES_PORT_CLOUD
            db = cls.POSTGRES_DB_CLOUD
            user = cls.POSTGRES_USER_CLOUD
            password = cls.POSTGRES_PASSWORD_CLOUD
        else:
            host = cls.POSTGRES_HOST_LOCAL
            port = cls.POSTGRES_PORT_LOCAL
            db = cls.POSTGRES_DB_LOCAL
            user = cls.POSTGRES_USER_LOCAL
            password = cls.POSTGRES_PASSWORD_LOCAL

        if password:
            return f"postgresql://{user}:{password}@{host}:{port}/{db}"
        return f"postgresql://{user}@{host}:{port}/{db}"


# Singleton instance
config = Config()

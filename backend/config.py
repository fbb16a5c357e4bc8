import os
import logging
from typing import List
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

DEV_SECRET_KEY = "dev-secret-key-change-me-please-at-least-32-chars"


def _get_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Application settings read from the environment"""

    def __init__(self):
        self.database_path: str = os.getenv("DATABASE_PATH", "portfolio.db")
        self.cors_origins: List[str] = [
            origin.strip()
            for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
            if origin.strip()
        ]

        self.jwt_secret_key: str = os.getenv("JWT_SECRET_KEY", DEV_SECRET_KEY)
        self.jwt_algorithm: str = "HS256"
        self.jwt_issuer: str = os.getenv("JWT_ISSUER", "PortfolioTrackerAPI")
        self.jwt_audience: str = os.getenv("JWT_AUDIENCE", "PortfolioTrackerClient")
        self.jwt_expiry_minutes: int = int(os.getenv("JWT_EXPIRY_MINUTES", 60))
        self.refresh_token_expiry_days: int = int(os.getenv("REFRESH_TOKEN_EXPIRY_DAYS", 7))
        self.bcrypt_rounds: int = int(os.getenv("BCRYPT_ROUNDS", 12))

        self.seed_database: bool = _get_bool("SEED_DATABASE", True)

        self.api_host: str = os.getenv("API_HOST", "0.0.0.0")
        self.api_port: int = int(os.getenv("API_PORT", 8000))

        if self.jwt_secret_key == DEV_SECRET_KEY:
            logger.warning("JWT_SECRET_KEY not set, using development key")


settings = Settings()

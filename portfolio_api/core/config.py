import os
import logging
from pydantic_settings import BaseSettings
from dotenv import load_dotenv
from typing import List

load_dotenv()

DEFAULT_CORS_ORIGINS = ["http://localhost:4200", "https://bmsnr4262.github.io"]
# Any Fly.io deployment of the site
CORS_ORIGIN_REGEX = r"https://.*\.fly\.dev"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseSettings):
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "portfolio-api"

    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./portfolio.db")
    POSTGRES_URL: str = os.getenv("POSTGRES_URL", "")

    SECRET_KEY: str = os.getenv("SECRET_KEY", "supersecretkey")
    ALGORITHM: str = os.getenv("ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "720"))
    ADMIN_AUTH_REQUIRED: bool = _env_flag("ADMIN_AUTH_REQUIRED", "true")

    SESSION_DURATION_DAYS: int = int(os.getenv("SESSION_DURATION_DAYS", "7"))
    SWEEP_INTERVAL_SECONDS: int = int(os.getenv("SWEEP_INTERVAL_SECONDS", "3600"))
    SWEEP_ON_STARTUP: bool = _env_flag("SWEEP_ON_STARTUP", "true")
    ADMIN_OTP_EXPIRE_MINUTES: int = int(os.getenv("ADMIN_OTP_EXPIRE_MINUTES", "10"))
    # Echo admin approval OTPs in the signup response when the owner cannot be notified
    DEMO_MODE: bool = _env_flag("DEMO_MODE", "false")
    DEFAULT_CLIENT_TIMEZONE: str = os.getenv("DEFAULT_CLIENT_TIMEZONE", "Asia/Kolkata")

    SMTP_HOST: str = os.getenv("SMTP_HOST", "")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME: str = os.getenv("SMTP_USERNAME", "")
    SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
    EMAIL_FROM: str = os.getenv("EMAIL_FROM", "")

    WEB3FORMS_URL: str = os.getenv("WEB3FORMS_URL", "https://api.web3forms.com/submit")
    WEB3FORMS_ACCESS_KEY: str = os.getenv("WEB3FORMS_ACCESS_KEY", "")
    OWNER_EMAIL: str = os.getenv("OWNER_EMAIL", "")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    class Config:
        case_sensitive = True

    @property
    def database_url(self) -> str:
        # A direct PostgreSQL URL wins over the generic one
        return self.POSTGRES_URL or self.DATABASE_URL

    @property
    def smtp_configured(self) -> bool:
        return all([self.SMTP_HOST, self.SMTP_USERNAME, self.SMTP_PASSWORD, self.EMAIL_FROM])

    @property
    def relay_configured(self) -> bool:
        return bool(self.WEB3FORMS_ACCESS_KEY and self.OWNER_EMAIL)


def get_cors_origins() -> List[str]:
    """
    Get the CORS origins from environment or use defaults
    """
    cors_origins_env = os.getenv("CORS_ORIGINS", "")
    if cors_origins_env:
        # Handle comma-separated list from environment variable
        origins = [origin.strip() for origin in cors_origins_env.split(",") if origin.strip()]
        if origins:
            return origins

    return DEFAULT_CORS_ORIGINS


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()],
    )


settings = Settings()

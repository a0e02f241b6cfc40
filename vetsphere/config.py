import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import Request

# Force-load .env (Windows-safe, reload-safe)
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"

PLACEHOLDER_VALUES = {
    "sk_test_placeholder",
    "whsec_placeholder",
    "YOUR_AIRWALLEX_CLIENT_ID",
    "YOUR_AIRWALLEX_API_KEY",
}


class Environment(str, Enum):
    PRODUCTION = "production"
    DEVELOPMENT = "development"
    TEST = "test"


class WebhookMode(str, Enum):
    VERIFIED = "verified"
    TEST = "test"
    DISABLED = "disabled"


def is_configured(value: Optional[str]) -> bool:
    """False for empty credentials and the placeholders shipped in example env files."""
    if not value:
        return False
    if value in PLACEHOLDER_VALUES or value.startswith("YOUR_"):
        return False
    return "placeholder" not in value.lower()


@dataclass(frozen=True)
class Settings:
    database_url: str
    environment: Environment = Environment.PRODUCTION
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    airwallex_host: str = "https://api-demo.airwallex.com"
    airwallex_client_id: Optional[str] = None
    airwallex_api_key: Optional[str] = None
    jwt_secret: Optional[str] = None
    ai_api_key: Optional[str] = None
    ai_base_url: Optional[str] = None
    ai_model: str = "google/gemini-3-flash-preview"
    log_level: str = "INFO"

    @property
    def stripe_configured(self) -> bool:
        return is_configured(self.stripe_secret_key)

    @property
    def airwallex_configured(self) -> bool:
        return is_configured(self.airwallex_client_id) and is_configured(self.airwallex_api_key)

    @property
    def ai_configured(self) -> bool:
        return bool(self.ai_api_key)

    @property
    def webhook_mode(self) -> WebhookMode:
        # Unsigned webhook bodies are only ever trusted outside production.
        if is_configured(self.stripe_webhook_secret):
            return WebhookMode.VERIFIED
        if self.environment != Environment.PRODUCTION:
            return WebhookMode.TEST
        return WebhookMode.DISABLED


def load_settings(env_path: Path = ENV_PATH) -> Settings:
    load_dotenv(dotenv_path=env_path)

    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        raise RuntimeError("DATABASE_URL is not set. Check your .env file.")

    return Settings(
        database_url=database_url,
        environment=Environment(os.getenv("APP_ENV", "production").lower()),
        stripe_secret_key=os.getenv("STRIPE_SECRET_KEY"),
        stripe_webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET"),
        airwallex_host=os.getenv("AIRWALLEX_HOST", "https://api-demo.airwallex.com"),
        airwallex_client_id=os.getenv("AIRWALLEX_CLIENT_ID"),
        airwallex_api_key=os.getenv("AIRWALLEX_API_KEY"),
        jwt_secret=os.getenv("JWT_SECRET"),
        ai_api_key=os.getenv("AI_API_KEY"),
        ai_base_url=os.getenv("AI_BASE_URL"),
        ai_model=os.getenv("AI_MODEL", "google/gemini-3-flash-preview"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def get_settings(request: Request) -> Settings:
    return request.app.state.settings

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal
from pathlib import Path

# Get backend directory (where .env is located)
BACKEND_DIR = Path(__file__).parent.parent.parent
ENV_FILE = BACKEND_DIR / ".env"


class Settings(BaseSettings):

    app_env: str = "dev"
    store_backend: Literal["sqlite", "redis"] = "sqlite"
    sqlite_path: str = "edit_requests.db"
    redis_url: str = "redis://localhost:6379/0"
    message_namespace: str = "lef"
    host_webhook_url: str = ""
    host_webhook_timeout: float = 2.0
    frame_session_ttl: int = 1800  # 30 minutes
    frame_observed_limit: int = 200

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        case_sensitive=False,
        extra="ignore"
    )

def get_settings() -> Settings:
    return Settings()

from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    PROJECT_NAME: str = "Stageflow"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"

    # Database
    SUPABASE_URL: Optional[str] = None
    SUPABASE_SERVICE_KEY: Optional[str] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None
    SUPABASE_ANON_KEY: Optional[str] = None

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://localhost:5173",
            "http://localhost:8000",
        ]
    )

    # Redis / Celery
    REDIS_URL: Optional[str] = None

    # Minutes between scheduled stage resync sweeps, 0 disables the schedule
    RESYNC_INTERVAL_MINUTES: int = 0

    # Propagate task changes from any writer via Supabase Realtime.
    # API status updates already propagate, so enable it where writes bypass the API.
    TASK_LISTENER_ENABLED: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None
    LOG_JSON: bool = False

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


from dotenv import load_dotenv
load_dotenv()

settings = Settings()

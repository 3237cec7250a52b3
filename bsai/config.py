from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "BSAI Compliance Gateway"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/v1"
    LOG_LEVEL: str = "INFO"

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:8080",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:8080",
    ]

    # Platform API
    PLATFORM_API_URL: str = "http://localhost:3001/api"
    REQUEST_TIMEOUT_SECONDS: float = 30.0

    # Session
    TOKEN_FILE: Optional[str] = None # e.g. ~/.bsai/auth_token

    # Assessment jobs. Poll cadence and close delay are agreed with the backend.
    JOB_POLL_INTERVAL_SECONDS: float = 2.0
    COMPLETION_CLOSE_DELAY_SECONDS: float = 2.0
    JOB_POLL_MAX_DURATION_SECONDS: float = 60 * 60
    TOTAL_ASSESSMENT_QUESTIONS: int = 107 # BSR question set

    # Document tables
    DOCUMENT_PAGE_SIZE: int = 50

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env")

settings = Settings()

"""
Application configuration management with environment-based settings.
"""
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache

class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ============= Application Settings =============
    APP_NAME: str = "QA Ledger"
    APP_VERSION: str = "1.0.0"
    APP_DESCRIPTION: str = "Federated question, answer, student and evaluator stores"
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="development")
    API_V1_PREFIX: str = "/api/v1"

    # ============= Server Settings =============
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)
    RELOAD: bool = Field(default=False)

    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # ============= Ledger Settings =============
    DATABASE_URL: str = Field(default="sqlite:///./qaledger.db")
    DATABASE_ECHO: bool = False
    # seconds a transaction waits for the SQLite write lock
    DATABASE_LOCK_TIMEOUT: float = Field(default=30.0, gt=0)

    # ============= Security Settings =============
    BCRYPT_ROUNDS: int = Field(default=12, ge=4, le=31)

    # ============= Store Settings =============
    QUESTION_STORE_NAME: str = "questions"
    STUDENT_STORE_NAME: str = "students"
    EVALUATOR_STORE_NAME: str = "evaluators"
    ANSWER_STORE_NAME: str = "answers"

    # ============= Reputation Settings =============
    STARTING_REPUTATION: int = 10
    STUDENT_REPUTATION_INCREMENT: int = 10
    # Endorsing requires points strictly greater than this.
    ENDORSEMENT_REPUTATION_THRESHOLD: int = 1000

    # ============= Monitoring Settings =============
    SENTRY_DSN: Optional[str] = None
    SENTRY_TRACES_SAMPLE_RATE: float = 0.1

    # ============= Logging Settings =============
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # json or text

    @field_validator("LOG_FORMAT")
    @classmethod
    def check_log_format(cls, v: str) -> str:
        if v not in ("json", "text"):
            raise ValueError("LOG_FORMAT must be 'json' or 'text'")
        return v

    def is_production(self) -> bool:
        """Check if running in production."""
        return self.ENVIRONMENT.lower() == "production"

    def is_testing(self) -> bool:
        """Check if running in testing."""
        return self.ENVIRONMENT.lower() == "testing"

@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

settings = get_settings()

"""Application configuration settings."""

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Dataset
    csv_path: str = "./data/ai_job_displacement_survey.csv"

    # Redis Configuration
    redis_url: str = "redis://localhost:6379/0"
    cache_dir: str = "./data/cache"
    cache_ttl_seconds: int = 24 * 60 * 60

    # OpenAI Configuration
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    llm_max_tokens: int = 1024

    # CORS Configuration
    allowed_origins: str = "http://localhost:3000,http://localhost:8000"

    @property
    def allowed_origins_list(self) -> List[str]:
        """Get allowed origins as a list."""
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    # Application Configuration
    app_name: str = "SurveyChat"
    app_version: str = "1.0.0"
    debug: bool = True
    log_level: str = "INFO"

    # Dashboard Configuration
    top_categories: int = 4
    chart_height: int = 320
    recipe_count: int = 6

    # Dashboard sessions (one per page load, kept in memory)
    max_sessions: int = 200
    session_ttl_seconds: int = 30 * 60

    # Dashboard client polling
    poll_interval_seconds: float = 2.0
    poll_error_interval_seconds: float = 3.0

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings

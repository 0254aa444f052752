from pydantic_settings import BaseSettings
from pathlib import Path

# Get the project root directory (parent of revision_engine folder)
PROJECT_ROOT = Path(__file__).parent.parent

class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""
    database_url: str = f"sqlite:///{PROJECT_ROOT / 'revisions.db'}"
    echo_sql: bool = False

    log_level: str = "INFO"

    # Optimistic concurrency: how often a conflicting write is re-read and re-applied
    conflict_retry_attempts: int = 3
    conflict_retry_max_wait: float = 2.0

    # Window used for "pending this week" style counts
    due_soon_days: int = 7

    class Config:
        env_file = str(PROJECT_ROOT / ".env")
        env_prefix = "REVISION_"

settings = Settings()

from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./taskboard.db"

    # HTTP surface
    api_prefix: str = "/api"
    cors_origin_regex: str = "https?://.*"
    task_default_limit: int = 100

    # Logging
    log_level: str = "INFO"
    log_file: str = "error.log"  # empty string disables the file handler

    class Config:
        env_file = ".env"

settings = Settings()

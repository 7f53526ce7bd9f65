import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    """
    Application settings for the function hub API and its clients.
    """
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # API settings
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "Function Hub"
    VERSION: str = "0.1.0"

    # Database settings (in-memory SQLite unless DATABASE_URL points elsewhere)
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite://")
    SEED_SAMPLE_FUNCTIONS: bool = True

    # Function configuration limits
    SUPPORTED_RUNTIMES: List[str] = ["nodejs18.x"]

    # Client settings
    API_BASE_URL: str = "http://localhost:8000"
    REQUEST_TIMEOUT_SECONDS: Optional[float] = 10.0

    LOG_LEVEL: str = "INFO"

    @field_validator("SUPPORTED_RUNTIMES")
    @classmethod
    def _at_least_one_runtime(cls, value: List[str]) -> List[str]:
        runtimes = [runtime.strip() for runtime in value if runtime.strip()]
        if not runtimes:
            raise ValueError("SUPPORTED_RUNTIMES must name at least one runtime")
        return runtimes


# Create global settings object
settings = Settings()

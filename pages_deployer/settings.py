# settings.py
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    GITHUB_TOKEN: str = ""
    GROQ_API_KEY: str = ""
    SECRET_KEY: str = ""
    EVALUATION_URL: str = ""
    PORT: int = 3000

    GITHUB_API_BASE: str = "https://api.github.com"
    GENERATION_API_URL: str = "https://api.groq.com/openai/v1/chat/completions"
    GENERATION_MODEL: str = "llama-3.3-70b-versatile"
    DEFAULT_BRANCH: str = "main"
    LOG_FILE_PATH: str = "logs/app.log"

    GENERATION_TIMEOUT_SECONDS: float = 30
    GITHUB_TIMEOUT_SECONDS: float = 45
    NOTIFY_TIMEOUT_SECONDS: float = 10
    NOTIFY_BACKOFF_SECONDS: List[float] = Field(default_factory=lambda: [1, 2, 4, 8, 16])

    MAX_NAME_ATTEMPTS: int = 5
    REPO_READY_ATTEMPTS: int = 5
    REPO_READY_DELAY_SECONDS: float = 2
    PAGES_BUILD_DELAY_SECONDS: float = 30
    PAGES_POLL_INTERVAL_SECONDS: float = 5

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore", frozen=True)

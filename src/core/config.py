"""Application configuration."""

from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import AnyUrl, BeforeValidator, HttpUrl, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_cors(v: Any) -> list[str] | str:
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",")]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    # Application
    PROJECT_NAME: str = "NewsHaiku"
    SERVER_PORT: int = 8000
    ROOTPATH: str = ""
    API_V1_STR: str = "/api/v1"
    FRONTEND_HOST: str = "http://localhost:3000"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    LOG_LEVEL: str = "INFO"

    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_cors)
    ] = []
    CORS_ALLOW_METHODS: list[str] = ["GET", "POST", "OPTIONS"]
    CORS_ALLOW_HEADERS: list[str] = ["*"]

    @computed_field
    @property
    def all_cors_origins(self) -> list[str]:
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS] + [
            self.FRONTEND_HOST
        ]

    # Sentry
    SENTRY_DSN: HttpUrl | None = None

    # Fetcher
    FETCH_TIMEOUT_SEC: float = 7.0
    FETCH_RETRIES: int = 2  # 额外重试次数（总尝试次数 = 1 + FETCH_RETRIES）
    FETCH_BACKOFF_BASE_SEC: float = 1.0  # 线性退避：attempt * base
    FETCHER_USER_AGENT: str = "Mozilla/5.0 (compatible; NewsHaiku/1.1)"

    # Headline rotation
    HEADLINE_CACHE_TTL_SEC: int = 5 * 60
    CACHE_SWEEP_INTERVAL_SEC: int = 60
    CIRCUIT_COOL_DOWN_SEC: float = 30.0
    USED_HEADLINES_MAX: int = 100
    HEADLINES_PER_SOURCE: int = 20
    HEADLINE_REQUEST_TIMEOUT_SEC: float = 25.0
    SOURCES_FILE: Path | None = None  # JSON 源目录，未配置时使用内置目录

    # Haiku (OpenAI-compatible endpoint)
    LLM_ENABLED: bool = True
    LLM_API_KEY: str | None = None
    LLM_API_BASE: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    HAIKU_MODEL: str = "gemini-2.0-flash"
    HAIKU_TEMPERATURE: float = 0.9
    HAIKU_MAX_TOKENS: int = 100
    HAIKU_TIMEOUT_SEC: float = 10.0
    HAIKU_MAX_RETRIES: int = 2  # 仅对临时性错误的额外重试次数
    HAIKU_CACHE_TTL_SEC: int = 30 * 60

    @computed_field
    @property
    def llm_configured(self) -> bool:
        return bool(self.LLM_ENABLED and self.LLM_API_KEY)


settings = Settings()

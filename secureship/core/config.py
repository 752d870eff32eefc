"""Application configuration loaded from environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Allowed URL schemes for DATABASE_URL (module-level so validators can use it).
VALID_DATABASE_URL_PREFIXES = (
    "sqlite://",
    "sqlite+pysqlite://",
    "postgresql://",
    "postgresql+psycopg2://",
    "postgres://",
)

SCANS_FILE_NAME = "scans.json"


class Settings(BaseSettings):
    """Validated application settings from env and optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    APP_ENV: Literal["dev", "prod"] = "dev"
    DEBUG: bool = False
    API_V1_PREFIX: str = "/api/v1"
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Scan report storage: flat JSON snapshot by default, SQL database optional
    DATA_DIR: str = "./data"
    STORE_BACKEND: Literal["file", "database"] = "file"
    DATABASE_URL: str = "sqlite:///./data/secureship.db"

    # Ollama (local LLM) used for per-file diff analysis
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "llama3"
    OLLAMA_REQUEST_TIMEOUT_SEC: float = 120.0
    # Deterministic generation (optional; defaults give reproducible outputs)
    OLLAMA_TEMPERATURE: float = 0.0
    OLLAMA_TOP_P: float = 1.0
    OLLAMA_REPEAT_PENALTY: float = 1.0
    OLLAMA_SEED: int = 42

    # GitHub: either a GitHub App (app id + private key) or a plain token
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_TOKEN: SecretStr | None = None
    GITHUB_APP_ID: int | None = None
    GITHUB_PRIVATE_KEY: SecretStr | None = None
    GITHUB_WEBHOOK_SECRET: SecretStr | None = None
    GITHUB_REQUEST_TIMEOUT_SEC: float = 30.0

    # Per-repository config file looked up at the PR head
    REPO_CONFIG_PATH: str = ".secureship.yml"
    # Webhook scans always post results; API-triggered scans only when enabled
    NOTIFY_ON_DEMAND_SCANS: bool = False

    @property
    def scans_file(self) -> Path:
        """Location of the JSON snapshot written by the file backend."""
        return Path(self.DATA_DIR) / SCANS_FILE_NAME

    @field_validator("DATA_DIR")
    @classmethod
    def validate_data_dir(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("DATA_DIR must be set and non-empty")
        return v.strip()

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("DATABASE_URL must be set and non-empty")
        if not any(v.startswith(prefix) for prefix in VALID_DATABASE_URL_PREFIXES):
            raise ValueError(
                "DATABASE_URL must be a SQLite or PostgreSQL URL (e.g. sqlite:///./data/secureship.db)"
            )
        return v.strip()

    @field_validator("OLLAMA_BASE_URL", "GITHUB_API_URL")
    @classmethod
    def validate_http_url(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("URL must be set and non-empty")
        s = v.strip().lower()
        if not (s.startswith("http://") or s.startswith("https://")):
            raise ValueError("URL must use http or https (e.g. http://localhost:11434)")
        return v.strip().rstrip("/")

    @field_validator("OLLAMA_REQUEST_TIMEOUT_SEC")
    @classmethod
    def validate_ollama_timeout(cls, v: float) -> float:
        if v <= 0 or v > 300:
            raise ValueError(
                "OLLAMA_REQUEST_TIMEOUT_SEC must be greater than 0 and at most 300"
            )
        return v

    @field_validator("OLLAMA_TEMPERATURE")
    @classmethod
    def validate_ollama_temperature(cls, v: float) -> float:
        if v < 0 or v > 2:
            raise ValueError("OLLAMA_TEMPERATURE must be between 0 and 2")
        return v

    @field_validator("OLLAMA_TOP_P")
    @classmethod
    def validate_ollama_top_p(cls, v: float) -> float:
        if v < 0 or v > 1:
            raise ValueError("OLLAMA_TOP_P must be between 0 and 1")
        return v

    @field_validator("OLLAMA_REPEAT_PENALTY")
    @classmethod
    def validate_ollama_repeat_penalty(cls, v: float) -> float:
        if v < 0.5 or v > 2:
            raise ValueError("OLLAMA_REPEAT_PENALTY must be between 0.5 and 2")
        return v

    @field_validator("OLLAMA_SEED")
    @classmethod
    def validate_ollama_seed(cls, v: int) -> int:
        if v < 0 or v > 2147483647:
            raise ValueError(
                "OLLAMA_SEED must be between 0 and 2147483647 (2^31-1)"
            )
        return v

    @field_validator("GITHUB_APP_ID")
    @classmethod
    def validate_github_app_id(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError("GITHUB_APP_ID must be a positive integer")
        return v

    @field_validator("GITHUB_PRIVATE_KEY")
    @classmethod
    def validate_github_private_key(cls, v: SecretStr | None) -> SecretStr | None:
        if v is None or not v.get_secret_value().strip():
            return None
        # Keys pasted into a single env line carry literal "\n" sequences.
        return SecretStr(v.get_secret_value().replace("\\n", "\n"))

    @field_validator("GITHUB_REQUEST_TIMEOUT_SEC")
    @classmethod
    def validate_github_timeout(cls, v: float) -> float:
        if v <= 0 or v > 120:
            raise ValueError(
                "GITHUB_REQUEST_TIMEOUT_SEC must be greater than 0 and at most 120"
            )
        return v

    @field_validator("REPO_CONFIG_PATH")
    @classmethod
    def validate_repo_config_path(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("REPO_CONFIG_PATH must be set and non-empty")
        return v.strip().lstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance (safe to call from dependencies)."""
    return Settings()


settings = get_settings()

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from docflow.pipeline.models import UNKNOWN_CATEGORY


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "docflow"
    db_username: str = "docflow"
    db_password: str = "secret"
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10

    redis_url: str = "redis://localhost:6379/0"
    status_cache_default_ttl_seconds: int | None = None
    status_cache_extraction_ttl_seconds: int | None = 3600

    max_delivery_attempts: int = 3
    channel_poll_interval_seconds: int = 5
    channel_visibility_timeout_seconds: int = 300
    publish_failure_markers: bool = False

    pdf_engine: str = "pdfplumber"
    ocr_engine: str = "paddleocr"
    ocr_lang: str = "en"
    content_fetch_timeout_seconds: int = 30
    content_files_root: str | None = None

    extraction_timeout_seconds: float = 60.0
    extraction_max_concurrency: int = 4
    classification_max_concurrency: int = 4

    classification_provider: str = "openai"
    classification_categories: list[str] = [
        "invoice",
        "receipt",
        "contract",
        "id_card",
        "resume",
    ]

    classification_openai_api_key: str = ""
    classification_openai_model_name: str = "gpt-4o-mini"
    classification_openai_timeout_seconds: int = 30
    classification_openai_temperature: float = 0.0

    classification_openai_compatible_base_url: str = ""
    classification_openai_compatible_api_key: str = ""
    classification_openai_compatible_model_name: str = ""
    classification_openai_compatible_timeout_seconds: int = 30

    classification_openrouter_api_key: str = ""
    classification_openrouter_model_name: str = ""
    classification_openrouter_timeout_seconds: int = 30

    classification_groq_api_key: str = ""
    classification_groq_model_name: str = ""
    classification_groq_timeout_seconds: int = 30

    classification_together_api_key: str = ""
    classification_together_model_name: str = ""
    classification_together_timeout_seconds: int = 30

    classification_deepseek_api_key: str = ""
    classification_deepseek_model_name: str = ""
    classification_deepseek_timeout_seconds: int = 30

    classification_ollama_api_key: str = "ollama"
    classification_ollama_model_name: str = ""
    classification_ollama_timeout_seconds: int = 60

    api_host: str = "0.0.0.0"
    api_port: int = 8000

    @field_validator("classification_categories")
    @classmethod
    def _validate_categories(cls, value: list[str]) -> list[str]:
        categories = [item.strip().lower() for item in value]
        if not categories or any(not item for item in categories):
            raise ValueError("classification_categories must be non-empty strings")
        if len(set(categories)) != len(categories):
            raise ValueError("classification_categories must be unique")
        if UNKNOWN_CATEGORY in categories:
            raise ValueError(
                f"'{UNKNOWN_CATEGORY}' is reserved for the classification fallback"
            )
        return categories

    @field_validator(
        "max_delivery_attempts",
        "extraction_max_concurrency",
        "classification_max_concurrency",
    )
    @classmethod
    def _validate_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    @field_validator("extraction_timeout_seconds")
    @classmethod
    def _validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("extraction_timeout_seconds must be positive")
        return value

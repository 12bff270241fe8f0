from typing import ClassVar

from docflow.classification.base import BaseClassifier
from docflow.classification.classifier import Classifier
from docflow.classification.config import ClassificationConfig
from docflow.classification.example_client_adapter import ExampleClientAdapter
from docflow.classification.openai_client_adapter import OpenAIClientAdapter
from docflow.config.settings import Settings


class ClassifierFactory:
    """Creates the configured classifier adapter."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "groq": "https://api.groq.com/openai/v1",
        "together": "https://api.together.xyz/v1",
        "deepseek": "https://api.deepseek.com/v1",
        "ollama": "http://localhost:11434/v1",
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseClassifier:
        """Create a configured classifier from application settings.

        Raises:
            ClassificationConfigError: if the prompt or schema is unusable.
            ValueError: for an unknown provider.
        """
        config = ClassificationConfig.load(settings.classification_categories)
        provider = settings.classification_provider.lower()
        if provider == "example":
            return Classifier(
                client=ExampleClientAdapter(),
                model="example",
                config=config,
            )
        client = OpenAIClientAdapter(
            api_key=cls._resolve_api_key(provider, settings),
            timeout_seconds=cls._resolve_timeout_seconds(provider, settings),
            base_url=cls._resolve_base_url(provider, settings),
        )
        return Classifier(
            client=client,
            model=cls._resolve_model_name(provider, settings),
            config=config,
            temperature=cls._resolve_temperature(provider, settings),
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        if provider == "openai":
            return None
        if provider == "openai_compatible":
            url = (settings.classification_openai_compatible_base_url or "").strip()
            if not url:
                raise ValueError(
                    "classification_openai_compatible_base_url is required for "
                    "classification_provider=openai_compatible"
                )
            return url
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return default_base_url
        supported = [
            "example",
            "openai",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise ValueError(
            f"Unknown classification provider '{provider}'. Choose from: {supported}"
        )

    @classmethod
    def _resolve_api_key(cls, provider: str, settings: Settings) -> str:
        key_map = {
            "openai": settings.classification_openai_api_key,
            "openai_compatible": settings.classification_openai_compatible_api_key,
            "openrouter": settings.classification_openrouter_api_key,
            "groq": settings.classification_groq_api_key,
            "together": settings.classification_together_api_key,
            "deepseek": settings.classification_deepseek_api_key,
            "ollama": settings.classification_ollama_api_key,
        }
        return key_map.get(provider, "") or ""

    @classmethod
    def _resolve_model_name(cls, provider: str, settings: Settings) -> str:
        key_map = {
            "openai": settings.classification_openai_model_name,
            "openai_compatible": settings.classification_openai_compatible_model_name,
            "openrouter": settings.classification_openrouter_model_name,
            "groq": settings.classification_groq_model_name,
            "together": settings.classification_together_model_name,
            "deepseek": settings.classification_deepseek_model_name,
            "ollama": settings.classification_ollama_model_name,
        }
        return key_map.get(provider, "") or ""

    @classmethod
    def _resolve_timeout_seconds(cls, provider: str, settings: Settings) -> int:
        key_map = {
            "openai": settings.classification_openai_timeout_seconds,
            "openai_compatible": settings.classification_openai_compatible_timeout_seconds,
            "openrouter": settings.classification_openrouter_timeout_seconds,
            "groq": settings.classification_groq_timeout_seconds,
            "together": settings.classification_together_timeout_seconds,
            "deepseek": settings.classification_deepseek_timeout_seconds,
            "ollama": settings.classification_ollama_timeout_seconds,
        }
        return key_map.get(provider, 30) or 30

    @classmethod
    def _resolve_temperature(cls, provider: str, settings: Settings) -> float:
        if provider == "openai":
            return settings.classification_openai_temperature
        return 0.0

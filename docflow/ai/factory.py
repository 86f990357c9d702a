from typing import ClassVar

from docflow.ai.client import GenerativeClient
from docflow.ai.client_base import BaseGenerativeClientAdapter
from docflow.ai.example_client_adapter import ExampleClientAdapter
from docflow.ai.openai_client_adapter import OpenAIClientAdapter
from docflow.config.settings import Settings


class GenerativeClientFactory:
    """Creates the generative client for the configured provider."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "groq": "https://api.groq.com/openai/v1",
        "together": "https://api.together.xyz/v1",
        "deepseek": "https://api.deepseek.com/v1",
        "ollama": "http://localhost:11434/v1",
    }

    @classmethod
    def create(cls, settings: Settings) -> GenerativeClient:
        """Create a configured client from application settings."""
        provider = settings.ai_provider.lower()
        if provider == "example":
            return GenerativeClient(
                client=ExampleClientAdapter(),
                models=["example"],
                temperature=0.0,
            )
        adapter: BaseGenerativeClientAdapter = OpenAIClientAdapter(
            api_key=settings.ai_api_key,
            timeout_seconds=settings.ai_timeout_seconds,
            base_url=cls._resolve_base_url(provider, settings),
        )
        return GenerativeClient(
            client=adapter,
            models=settings.ai_models,
            temperature=settings.ai_temperature,
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        configured = (settings.ai_base_url or "").strip()
        if provider == "openai":
            return configured or None
        if provider == "openai_compatible":
            if not configured:
                raise ValueError(
                    "ai_base_url is required for ai_provider=openai_compatible"
                )
            return configured
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return configured or default_base_url
        supported = [
            "example",
            "openai",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise ValueError(f"Unknown AI provider '{provider}'. Choose from: {supported}")

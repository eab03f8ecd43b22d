"""LLM provider factory.

Supports multiple LLM backends:
- Google (default): Gemini via langchain-google-genai
- OpenAI: Direct OpenAI API access
- OpenRouter: Access to many models via unified API
- Ollama: Local models through its OpenAI-compatible endpoint
- Any OpenAI-compatible API: Set LLM_BASE_URL with LLM_PROVIDER=custom

Environment variables:
- LLM_PROVIDER: google (default), openai, openrouter, ollama, custom
- LLM_MODEL: Model name (e.g., gemini-2.0-flash, gpt-4o)
- LLM_API_KEY: API key for OpenAI-compatible providers
- GOOGLE_API_KEY: API key for Gemini
- LLM_BASE_URL: Custom base URL for OpenAI-compatible APIs
- LLM_TEMPERATURE: Generation temperature (0.0-2.0)
"""

import logging
from functools import lru_cache
from typing import Any

from langchain_core.language_models import BaseChatModel

from orgflow.exceptions import ConfigurationError
from orgflow.settings import get_settings

logger = logging.getLogger(__name__)

# Provider base URLs
PROVIDER_BASE_URLS = {
    "openrouter": "https://openrouter.ai/api/v1",
    "openai": "https://api.openai.com/v1",
    "ollama": "http://localhost:11434/v1",
}


def get_llm(
    temperature: float | None = None,
    model: str | None = None,
    provider: str | None = None,
    **kwargs: Any,
) -> BaseChatModel:
    """Get LLM instance based on configured provider.

    Args:
        temperature: Override default temperature
        model: Override default model name
        provider: Override default provider
        **kwargs: Additional provider-specific arguments

    Returns:
        Configured LLM instance

    Raises:
        ConfigurationError: If provider is not supported or API key is missing
    """
    settings = get_settings()
    model_name = model or settings.llm_model
    temp = temperature if temperature is not None else settings.llm_temperature
    provider = provider or settings.llm_provider

    logger.debug("Creating %s chat model '%s' (temperature=%s)", provider, model_name, temp)
    return _create_llm_instance(
        provider=provider,
        model=model_name,
        temperature=temp,
        **kwargs,
    )


def _create_llm_instance(
    provider: str,
    model: str,
    temperature: float,
    **kwargs: Any,
) -> BaseChatModel:
    settings = get_settings()

    # Google Gemini uses separate SDK
    if provider == "google":
        from langchain_google_genai import ChatGoogleGenerativeAI

        api_key = settings.google_api_key.get_secret_value()
        if not api_key:
            raise ConfigurationError("GOOGLE_API_KEY is required when using Google provider")

        return ChatGoogleGenerativeAI(
            model=model,
            temperature=temperature,
            google_api_key=api_key,
            **kwargs,
        )

    # OpenAI-compatible providers
    from langchain_openai import ChatOpenAI

    api_key = settings.llm_api_key.get_secret_value()
    if not api_key and provider != "ollama":
        raise ConfigurationError(f"LLM_API_KEY is required when using {provider} provider")

    base_url = settings.llm_base_url
    if base_url is None:
        base_url = PROVIDER_BASE_URLS.get(provider)
        if base_url is None:
            raise ConfigurationError(
                f"Unknown provider '{provider}'. Set LLM_BASE_URL for custom providers."
            )

    llm_kwargs: dict[str, Any] = {
        "model": model,
        "temperature": temperature,
        "base_url": base_url,
        **kwargs,
    }
    llm_kwargs["api_key"] = api_key or "ollama"

    if provider == "openrouter":
        llm_kwargs.setdefault("default_headers", {})
        llm_kwargs["default_headers"]["X-Title"] = "orgflow"

    return ChatOpenAI(**llm_kwargs)


@lru_cache
def get_default_llm() -> BaseChatModel:
    """Get cached default LLM instance."""
    return get_llm()


def list_supported_providers() -> dict[str, str]:
    """List supported LLM providers and their base URLs."""
    return {
        **PROVIDER_BASE_URLS,
        "google": "(uses Google SDK)",
        "custom": "(requires LLM_BASE_URL)",
    }

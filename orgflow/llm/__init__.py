"""LLM provider factory."""

from orgflow.llm.factory import (
    PROVIDER_BASE_URLS,
    get_default_llm,
    get_llm,
    list_supported_providers,
)

__all__ = [
    "PROVIDER_BASE_URLS",
    "get_default_llm",
    "get_llm",
    "list_supported_providers",
]

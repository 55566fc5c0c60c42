"""LLM client abstractions and implementations."""

from .llm_client import LLMClient, ToolCall
from .replicate_client import LLMClientError, ReplicateLLMClient
from .embeddings_provider import EmbeddingsProvider

__all__ = [
    "LLMClient",
    "ToolCall",
    "LLMClientError",
    "ReplicateLLMClient",
    "EmbeddingsProvider",
]

"""Application settings loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

# config/prompts.yaml relative to the project root, independent of CWD
DEFAULT_PROMPTS_PATH = Path(__file__).resolve().parents[2] / "config" / "prompts.yaml"


class Settings(BaseSettings):
    """Runtime settings for the application."""

    # Relational store (papers, question_answering)
    postgres_uri: str = Field(default="")
    # Vector store
    milvus_uri: str = Field(default="")
    milvus_token: str = Field(default="")
    # Extraction service
    unstructured_api_key: str = Field(default="")
    unstructured_api_url: str = Field(
        default="https://api.unstructuredapp.io/general/v0/general"
    )
    unstructured_strategy: str = Field(default="hi_res")
    # Generation / embeddings
    replicate_api_token: str = Field(default="")
    notes_model: str = Field(default="openai/gpt-5-structured")
    notes_temperature: float = Field(default=0.0)
    qa_model: str = Field(default="openai/gpt-5-structured")
    embeddings_model: str = Field(default="nomic-ai/nomic-embed-text-v1.5")
    embedding_dim: int = Field(default=768)
    llm_log_payloads: bool = Field(default=False)
    llm_max_output_tokens: int = Field(default=4096)
    # Pipelines
    notes_max_chars_per_call: Optional[int] = Field(default=None)
    qa_top_k: int = Field(default=4)
    qa_max_context_chars: int = Field(default=12000)
    # Restrict QA retrieval to the requested paper; False searches every paper
    qa_scope_to_url: bool = Field(default=True)
    http_timeout: float = Field(default=120.0)
    prompts_path: Path = Field(default=DEFAULT_PROMPTS_PATH)
    # Logging
    log_level: str = Field(default="INFO")
    service_name: str = Field(default="papernotes")
    environment: str = Field(default="development")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def require(self, name: str) -> str:
        """Return a non-empty string setting or raise ``ConfigurationError``."""
        value = getattr(self, name, "")
        if not value:
            raise ConfigurationError(f"{name.upper()} is not set")
        return value


@lru_cache
def get_settings() -> Settings:
    """Return application settings instance."""
    return Settings()


__all__ = ["Settings", "get_settings", "DEFAULT_PROMPTS_PATH"]

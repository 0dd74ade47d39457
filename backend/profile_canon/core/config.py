# profile_canon/core/config.py
from __future__ import annotations
from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import Field

# Resolve the .env alongside the backend package root (adjust if your layout differs)
ENV_PATH = Path(__file__).resolve().parent.parent / ".env"


class Settings(BaseSettings):

    # --- Database ---
    DATABASE_URL: str = Field(..., description="Full PostgreSQL connection URL (sync, e.g., postgresql+psycopg://...)")

    # --- App info ---
    APP_NAME: str = Field(default="Profile Canon Backend")

    # --- Embeddings ---
    OLLAMA_BASE_URL: str | None = Field(default=None, description="Base URL of local Ollama server")
    EMBEDDING_MODEL: str | None = Field(default=None, description="Ollama embedding model; when set, Ollama is used instead of OpenAI")
    OPENAI_API_KEY: str | None = Field(default=None, description="API key for OpenAI services")
    OPENAI_EMBEDDING_MODEL: str = Field(default="text-embedding-3-small", description="Default OpenAI model for embeddings")
    EMBEDDING_DIMENSIONS: int = Field(default=768, description="Vector width stored for bullet embeddings")

    # --- Canonical profile ---
    EXPERIENCE_MERGE_STRATEGY: str = Field(
        default="greedy",
        description="'greedy' (single pass against formed groups) or 'transitive' (union-find closure)",
    )

    class Config:
        env_file = str(ENV_PATH)
        case_sensitive = True
        extra = "ignore"


settings = Settings()

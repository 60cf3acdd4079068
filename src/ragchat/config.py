"""Shared configuration loaded from environment / ``.env``."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # Prompt
    system_prompt: str = Field(
        default=(
            "You are a helpful assistant. Answer the user's question using the "
            "context provided. If the context does not contain the answer, say "
            "that you don't know instead of making one up."
        ),
        description="Static system instructions sent before the retrieved context",
    )

    # LLM
    openai_api_key: str = Field(default="", description="API key for the LLM endpoint (or dummy value for Ollama / vLLM)")
    llm_model_name: str = Field(default="llama3", description="LLM model identifier")
    llm_base_url: str = Field(
        default="http://localhost:11434/v1",
        description=(
            "Base URL of an OpenAI-compatible chat completions API. The default "
            "points at a local Ollama server; leave empty to use OpenAI cloud."
        ),
    )
    llm_temperature: float = 0.0

    # Vector store
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_collection: str = "ragchat"
    chroma_distance: str = Field(default="cosine", description="HNSW space: cosine | l2 | ip")
    upsert_batch_size: int = Field(default=5000, description="Max records per write call")

    # Embedding
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"

    # Chunking
    chunk_size: int = Field(default=800, description="Maximum characters per chunk")
    chunk_overlap: int = Field(default=100, description="Characters shared by consecutive chunks")
    min_chunk_size: int = Field(default=350, description="Trailing fragments shorter than this are merged")
    min_chunk_length_to_embed: int = Field(default=5, description="Shorter chunks are discarded")
    max_num_chunks: int = Field(default=10000, description="Upper bound on chunks per document")

    # Retrieval
    top_k: int = Field(default=4, description="Retrieved chunks per chat turn")
    score_threshold: float | None = Field(default=None, description="Minimum similarity kept; unset keeps every hit")

    # Retention
    retention_period_days: int = 30
    retention_sweep_hour: int = Field(default=0, ge=0, le=23)
    retention_sweep_minute: int = Field(default=0, ge=0, le=59)
    retention_enabled: bool = True

    # Serving
    max_upload_bytes: int = 20 * 1024 * 1024
    chat_worker_pool_size: int = Field(default=8, description="Threads available to blocking chat / ingest calls")
    stream_buffer_size: int = Field(default=16, description="Fragments buffered between model and client")
    cors_origins: list[str] = ["http://localhost:5173"]
    default_locale: str = "en"
    log_level: str = "INFO"
    server_host: str = "0.0.0.0"
    server_port: int = 8080

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton; components fall back to it when no Settings are passed.
settings = Settings()

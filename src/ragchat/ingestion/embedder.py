"""Embedding model factory."""

from __future__ import annotations

from langchain_huggingface import HuggingFaceEmbeddings

from ragchat.config import settings


def get_embedding_function(model_name: str | None = None) -> HuggingFaceEmbeddings:
    """Return the configured sentence-transformer embedding function.

    Vectors are L2-normalised so cosine distance in the store behaves.
    """
    return HuggingFaceEmbeddings(
        model_name=model_name or settings.embedding_model,
        encode_kwargs={"normalize_embeddings": True},
    )

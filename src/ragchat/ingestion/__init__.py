"""
Ingestion — text extraction, chunking, and embedding into the vector store.

This module converts uploaded documents (PDF, DOCX, Markdown, plain
text, …) into tagged chunks written to the vector store in one batch.
"""

from ragchat.ingestion.ingestor import DocumentIngestor

__all__ = ["DocumentIngestor"]

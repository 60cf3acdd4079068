"""
Serving — FastAPI application for the RAG chat backend.

This module exposes chat, streaming chat, ingestion and source management
over HTTP, and owns the retention sweeper's lifecycle.
"""

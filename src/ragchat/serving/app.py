"""FastAPI application exposing the RAG chat backend as a REST API."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import anyio
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from langchain_core.language_models import BaseChatModel

from ragchat import __version__
from ragchat.config import Settings, settings as default_settings
from ragchat.retrieval.base import VectorStoreBase
from ragchat.serving.errors import register_exception_handlers
from ragchat.serving.routes import router
from ragchat.serving.services import build_services, get_services

logger = logging.getLogger(__name__)


def create_app(
    config: Settings | None = None,
    *,
    store: VectorStoreBase | None = None,
    llm: BaseChatModel | None = None,
    start_sweeper: bool | None = None,
) -> FastAPI:
    """Build the application.

    Services are created in the lifespan, so importing this module never
    opens a connection.  Tests inject *store* / *llm* fakes and usually
    pass ``start_sweeper=False``.
    """
    config = config or default_settings
    run_sweeper = config.retention_enabled if start_sweeper is None else start_sweeper

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        services = build_services(config, store=store, llm=llm)
        app.state.services = services
        if run_sweeper:
            services.sweeper.start()
        logger.info("ragchat %s ready (collection=%r)", __version__, services.store.collection_name)
        try:
            yield
        finally:
            await services.sweeper.stop()

    app = FastAPI(
        title="RAG Chat API",
        version=__version__,
        description="Retrieval-augmented chat over ingested documents.",
        lifespan=lifespan,
    )
    app.state.default_locale = config.default_locale
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    app.include_router(router)

    @app.get("/health")
    async def health(request: Request) -> dict[str, str]:
        """Liveness plus reachability of the vector store and the model endpoint."""
        services = get_services(request)
        store_up = await anyio.to_thread.run_sync(services.store.health_check)
        llm_up = await anyio.to_thread.run_sync(services.llm_health)
        return {
            "status": "ok",
            "vector_store": "up" if store_up else "down",
            "llm": "up" if llm_up else "down",
            "llm_url": services.settings.llm_base_url,
        }

    return app


app = create_app()

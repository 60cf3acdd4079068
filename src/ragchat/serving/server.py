"""Process entry point: ``ragchat-server``."""

from __future__ import annotations

import logging

import uvicorn

from ragchat.config import settings


def main() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # Chroma and httpx are chatty at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("chromadb").setLevel(logging.WARNING)

    from ragchat.serving.app import create_app

    uvicorn.run(create_app(settings), host=settings.server_host, port=settings.server_port, log_config=None)


if __name__ == "__main__":
    main()

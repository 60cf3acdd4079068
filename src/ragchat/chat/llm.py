"""LLM initialisation — single place to swap providers.

Supports two modes:

1. **OpenAI-compatible endpoint** (default) — ``LLM_BASE_URL`` points at a
   local Ollama server (``http://localhost:11434/v1``), a vLLM deployment,
   or any other server exposing ``/v1/chat/completions``.  ``ChatOpenAI``
   works unchanged against all of them.
2. **OpenAI cloud** — clear ``LLM_BASE_URL`` and set ``OPENAI_API_KEY``.
"""

from __future__ import annotations

import logging

import httpx
from langchain_openai import ChatOpenAI

from ragchat.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

OPENAI_BASE_URL = "https://api.openai.com/v1"


def get_llm(config: Settings | None = None) -> ChatOpenAI:
    """Return the configured chat model.

    When ``llm_base_url`` is set the client is pointed at that endpoint.
    A dummy API key (``"EMPTY"``) is used when none is configured because
    Ollama and vLLM do not require authentication.
    """
    config = config or default_settings
    kwargs: dict = {
        "model": config.llm_model_name,
        "temperature": config.llm_temperature,
    }

    if config.llm_base_url:
        logger.info("Using OpenAI-compatible endpoint: %s", config.llm_base_url)
        kwargs["base_url"] = config.llm_base_url
        # Ollama doesn't need a real key; LangChain requires a non-empty value.
        kwargs["api_key"] = config.openai_api_key or "EMPTY"
    else:
        kwargs["api_key"] = config.openai_api_key

    return ChatOpenAI(**kwargs)


def llm_health_check(
    config: Settings | None = None,
    *,
    timeout: float = 2.0,
    transport: httpx.BaseTransport | None = None,
) -> bool:
    """Return ``True`` when the model endpoint answers ``GET {base_url}/models``.

    Any response below 500 counts as reachable; a 401 from the cloud API
    still proves the endpoint is up.  Connection failures and timeouts are
    logged and reported as ``False``.
    """
    config = config or default_settings
    url = (config.llm_base_url or OPENAI_BASE_URL).rstrip("/") + "/models"
    headers = {"Authorization": f"Bearer {config.openai_api_key}"} if config.openai_api_key else {}
    try:
        with httpx.Client(timeout=timeout, transport=transport) as client:
            response = client.get(url, headers=headers)
    except httpx.HTTPError as exc:
        logger.warning("LLM endpoint %s unreachable: %s", url, exc)
        return False
    if response.status_code >= 500:
        logger.warning("LLM endpoint %s answered %d", url, response.status_code)
        return False
    return True

"""User-facing status strings.

Only response texts are localised; nothing in the request flow branches on
the locale.
"""

from __future__ import annotations

CATALOG: dict[str, dict[str, str]] = {
    "en": {
        "vector.store.cleared": "Vector store cleared successfully. Removed {count} chunk(s).",
        "vector.store.deleted.source": "Deleted {count} chunk(s) for source: {source}",
        "ingest.content.success": "Successfully ingested {source} ({chunks} chunk(s)).",
        "ingest.content.empty": "No text could be extracted from {source}.",
        "error.file.too.large": "File is too large. Maximum upload size is {limit} bytes.",
        "error.vector.store": "The vector store is unavailable. Please try again later.",
        "error.llm": "The language model is unavailable. Please try again later.",
        "error.unexpected": "An unexpected error occurred.",
    },
    "pt-BR": {
        "vector.store.cleared": "Banco vetorial limpo com sucesso. {count} trecho(s) removido(s).",
        "vector.store.deleted.source": "{count} trecho(s) excluído(s) da fonte: {source}",
        "ingest.content.success": "{source} ingerido com sucesso ({chunks} trecho(s)).",
        "ingest.content.empty": "Nenhum texto pôde ser extraído de {source}.",
        "error.file.too.large": "Arquivo muito grande. O tamanho máximo é {limit} bytes.",
        "error.vector.store": "O banco vetorial está indisponível. Tente novamente mais tarde.",
        "error.llm": "O modelo de linguagem está indisponível. Tente novamente mais tarde.",
        "error.unexpected": "Ocorreu um erro inesperado.",
    },
}

DEFAULT_LOCALE = "en"


def resolve_locale(accept_language: str | None, default: str = DEFAULT_LOCALE) -> str:
    """Pick the best catalog locale for an ``Accept-Language`` header.

    Quality weights are honoured; a bare language (``pt``) matches the first
    regional catalog entry for it (``pt-BR``).
    """
    if not accept_language:
        return default if default in CATALOG else DEFAULT_LOCALE

    candidates: list[tuple[float, str]] = []
    for part in accept_language.split(","):
        tag, _, params = part.strip().partition(";")
        if not tag:
            continue
        quality = 1.0
        if params.strip().startswith("q="):
            try:
                quality = float(params.strip()[2:])
            except ValueError:
                quality = 0.0
        candidates.append((quality, tag))

    for _, tag in sorted(candidates, key=lambda c: c[0], reverse=True):
        for locale in CATALOG:
            if locale.lower() == tag.lower():
                return locale
        language = tag.split("-")[0].lower()
        for locale in CATALOG:
            if locale.split("-")[0].lower() == language:
                return locale
    return default if default in CATALOG else DEFAULT_LOCALE


def get_message(key: str, locale: str = DEFAULT_LOCALE, **params: object) -> str:
    """Render catalog entry *key*, falling back to English, then to the key."""
    template = CATALOG.get(locale, {}).get(key) or CATALOG[DEFAULT_LOCALE].get(key, key)
    return template.format(**params)

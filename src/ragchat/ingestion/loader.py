"""Document loaders — thin wrappers around LangChain document loaders.

Uploads arrive as raw bytes.  They are spooled to a temporary file with the
original suffix so the LangChain loaders can pick the right parser.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from langchain_core.document_loaders import BaseLoader
from langchain_community.document_loaders import (
    Docx2txtLoader,
    PyPDFLoader,
    TextLoader,
    UnstructuredExcelLoader,
    UnstructuredODTLoader,
    UnstructuredPowerPointLoader,
    UnstructuredWordDocumentLoader,
)

from ragchat.errors import UnreadableDocumentError

if TYPE_CHECKING:
    from langchain_core.documents import Document

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = frozenset(
    {".txt", ".md", ".markdown", ".csv", ".json", ".html", ".htm", ".xml", ".log", ".rst", ".yaml", ".yml"}
)
# Office formats other than .docx go through unstructured; legacy .doc/.ppt also need LibreOffice on the host.
BINARY_LOADERS: dict[str, type[BaseLoader]] = {
    ".pdf": PyPDFLoader,
    ".docx": Docx2txtLoader,
    ".doc": UnstructuredWordDocumentLoader,
    ".odt": UnstructuredODTLoader,
    ".pptx": UnstructuredPowerPointLoader,
    ".ppt": UnstructuredPowerPointLoader,
    ".xlsx": UnstructuredExcelLoader,
    ".xls": UnstructuredExcelLoader,
}
SUPPORTED_EXTENSIONS = TEXT_EXTENSIONS | frozenset(BINARY_LOADERS)


def _loader_for(path: str, suffix: str) -> BaseLoader:
    loader_cls = BINARY_LOADERS.get(suffix)
    if loader_cls is None:
        return TextLoader(path, autodetect_encoding=True)
    return loader_cls(path)


def load_bytes(content: bytes, file_name: str) -> list[Document]:
    """Extract text from an uploaded file.

    Parameters
    ----------
    content:
        Raw file bytes.
    file_name:
        Original file name; its extension selects the parser.

    Returns
    -------
    list[Document]
        One document per extracted unit (a PDF yields one per page).

    Raises
    ------
    UnreadableDocumentError
        For unsupported extensions and for content the parser rejects.
    """
    suffix = Path(file_name).suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        raise UnreadableDocumentError(
            f"Unsupported file type {suffix or '(none)'!r}",
            {"file_name": file_name, "supported": sorted(SUPPORTED_EXTENSIONS)},
        )

    fd, path = tempfile.mkstemp(suffix=suffix)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(content)
        documents = _loader_for(path, suffix).load()
    except Exception as exc:
        logger.warning("Could not extract text from %s", file_name, exc_info=True)
        raise UnreadableDocumentError(f"Could not read {file_name}", {"file_name": file_name}) from exc
    finally:
        os.unlink(path)

    logger.info("Extracted %d unit(s) from %s", len(documents), file_name)
    return documents

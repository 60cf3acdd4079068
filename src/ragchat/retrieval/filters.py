"""Textual filter expressions over chunk metadata.

The grammar is deliberately small::

    expr    := compare (("AND" | "&&") compare)*
    compare := KEY OP LITERAL
    OP      := "==" | "!=" | "<" | "<=" | ">" | ">="
    LITERAL := 'single quoted' | "double quoted" | integer | float | true | false

``source == 'policy.pdf' AND ingestion_timestamp >= 1700000000000`` parses to
two :class:`MetadataFilter` objects that backends combine with logical AND.
"""

from __future__ import annotations

import re
from typing import Any

from ragchat.errors import ValidationError
from ragchat.retrieval.models import MetadataFilter

_OPERATORS = {
    "==": "eq",
    "!=": "ne",
    "<": "lt",
    "<=": "lte",
    ">": "gt",
    ">=": "gte",
}

_TOKEN_RE = re.compile(
    r"""
    \s*(?:
        (?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
      | (?P<op>==|!=|<=|>=|<|>|&&)
      | (?P<number>-?\d+(?:\.\d+)?)
      | (?P<word>[A-Za-z_][\w.\-]*)
    )
    """,
    re.VERBOSE,
)


def _tokenize(text: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None or match.end() == pos:
            raise ValidationError(
                f"Unexpected character in filter expression at position {pos}",
                field="filter",
                details={"expression": text},
            )
        kind = match.lastgroup or ""
        tokens.append((kind, match.group(kind)))
        pos = match.end()
    return tokens


def _literal(kind: str, raw: str) -> Any:
    if kind == "string":
        body = raw[1:-1]
        return re.sub(r"\\(.)", r"\1", body)
    if kind == "number":
        return float(raw) if "." in raw else int(raw)
    if kind == "word" and raw.lower() in ("true", "false"):
        return raw.lower() == "true"
    raise ValidationError(f"Expected a literal value, got {raw!r}", field="filter")


def parse_filter_expression(text: str) -> list[MetadataFilter]:
    """Parse *text* into a conjunction of :class:`MetadataFilter` objects.

    Raises
    ------
    ValidationError
        When the expression does not follow the grammar above.
    """
    if not text or not text.strip():
        raise ValidationError("Filter expression must not be empty", field="filter")

    tokens = _tokenize(text)
    filters: list[MetadataFilter] = []
    i = 0
    while True:
        if i + 3 > len(tokens):
            raise ValidationError("Incomplete filter expression", field="filter", details={"expression": text})
        (key_kind, key), (op_kind, op), (lit_kind, lit) = tokens[i : i + 3]
        if key_kind != "word" or op_kind != "op" or op not in _OPERATORS:
            raise ValidationError(
                f"Expected '<key> <operator> <value>' near {key!r}",
                field="filter",
                details={"expression": text},
            )
        filters.append(MetadataFilter(field=key, operator=_OPERATORS[op], value=_literal(lit_kind, lit)))
        i += 3
        if i == len(tokens):
            return filters
        kind, value = tokens[i]
        if not ((kind == "op" and value == "&&") or (kind == "word" and value.upper() == "AND")):
            raise ValidationError(f"Expected AND, got {value!r}", field="filter", details={"expression": text})
        i += 1


def format_equals(key: str, value: str) -> str:
    """Render the single-predicate ``key == 'value'`` form, escaping quotes."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"{key} == '{escaped}'"

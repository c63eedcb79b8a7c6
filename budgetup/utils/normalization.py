"""
Name normalization helpers

Import rows and export files refer to accounts and categories by name, so
lookups go through one normalized key.
"""

import re
import unicodedata
from typing import Any, Iterable


def normalize_name_token(value: str | None) -> str:
    """
    Normalize a display name into a lookup key

    - NFKC normalization (full-width digits become ASCII)
    - casefold
    - surrounding whitespace trimmed, inner runs collapsed to one space

    Example:
        >>> normalize_name_token("  Banco   Popular ")
        "banco popular"
        >>> normalize_name_token("CAJA １")
        "caja 1"
    """
    if not value:
        return ""
    normalized = unicodedata.normalize("NFKC", value)
    normalized = normalized.casefold()
    return re.sub(r"\s+", " ", normalized).strip()


def normalize_category_ref(name: str | None, category_type: Any) -> str:
    """
    Category lookup key; the same name may exist once per type.

    Example:
        >>> normalize_category_ref("Servicios", "income")
        "income:servicios"
    """
    token = normalize_name_token(name)
    if not token:
        return ""
    kind = getattr(category_type, "value", category_type)
    return f"{kind}:{token}"


def index_by_name(rows: Iterable[Any]) -> dict[str, Any]:
    """Map normalized ``row.name`` to the row; the first row wins on collisions."""
    index: dict[str, Any] = {}
    for row in rows:
        index.setdefault(normalize_name_token(row.name), row)
    return index


def fold_text(value: str | None) -> str | None:
    """
    Case- and width-insensitive form for substring search

    Unlike ``normalize_name_token`` whitespace is kept as is. Registered as
    the ``casefold`` SQL function on SQLite connections, whose ``lower()``
    only folds ASCII.

    Example:
        >>> fold_text("PAGO NÓMINA")
        "pago nómina"
    """
    if value is None:
        return None
    return unicodedata.normalize("NFKC", str(value)).casefold()

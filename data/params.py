"""Query-string encoding for marketplace API requests."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import BaseModel


def _to_str(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def query_items(query: Mapping[str, Any] | BaseModel | None) -> list[tuple[str, str]]:
    """Flatten a query into ``(key, value)`` pairs.

    Lists and tuples become one pair per element, in order. Keys whose
    value is ``None`` are dropped. Pydantic models are dumped by alias so
    that ``token_id`` goes out as ``tokenId``.
    """
    if query is None:
        return []
    if isinstance(query, BaseModel):
        query = query.model_dump(by_alias=True)

    items: list[tuple[str, str]] = []
    for key, value in query.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            items.extend((key, _to_str(v)) for v in value if v is not None)
        else:
            items.append((key, _to_str(value)))
    return items


def set_params(url: str | httpx.URL, query: Mapping[str, Any] | BaseModel | None) -> str:
    """Return ``url`` with the query appended to any existing parameters."""
    base = httpx.URL(url)
    params = list(base.params.multi_items()) + query_items(query)
    return str(base.copy_with(params=params))

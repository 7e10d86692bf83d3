"""Query parameters for the order API endpoints."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

Q = TypeVar("Q", bound="_Query")


class _Query(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="allow",
    )

    contract: Optional[str] = Field(default=None, description="Collection contract address")
    token_id: Optional[str] = Field(default=None, description="Token id as a decimal string")


class FillOrderQuery(_Query):
    """Query for ``GET /orders/fill``."""

    side: Optional[Literal["buy", "sell"]] = None


class BuildOrderQuery(_Query):
    """Query for ``GET /orders/build``."""

    maker: Optional[str] = None
    side: Optional[Literal["buy", "sell"]] = None
    price: Optional[str] = Field(default=None, description="Price in wei")
    fee: Optional[str] = Field(default=None, description="Fee in basis points")
    fee_recipient: Optional[str] = None
    listing_time: Optional[str] = None
    expiration_time: Optional[str] = None
    salt: Optional[str] = None


def coerce_query(model: type[Q], query: Q | Mapping[str, Any] | None) -> Q | None:
    """Validate a plain mapping into ``model``; ``None`` if it does not fit."""
    if query is None or isinstance(query, model):
        return query
    if isinstance(query, BaseModel):
        query = query.model_dump(by_alias=True)
    try:
        return model.model_validate(query)
    except ValidationError:
        return None

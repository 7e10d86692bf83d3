"""NFT orders — execution package."""

from .accept_offer import OfferAcceptor, accept_offer
from .listing import Lister, list_token_for_sell
from .order_fetcher import (
    MatchedOrders,
    OrderFetcher,
    fetch_buildable_order,
    fetch_matching_order,
)

__all__ = [
    "Lister",
    "MatchedOrders",
    "OfferAcceptor",
    "OrderFetcher",
    "accept_offer",
    "fetch_buildable_order",
    "fetch_matching_order",
    "list_token_for_sell",
]

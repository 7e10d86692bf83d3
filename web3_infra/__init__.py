"""NFT orders — web3_infra package.

- Signer: local-key transaction and message signing over AsyncWeb3
- Order / Exchange: Wyvern v2 order primitives
- ProxyApprovalChecker: proxy registration and collection approval
"""

from .proxy_approval import ApprovalOutcome, ProxyApprovalChecker, ensure_proxy_approved
from .signer import Signer, TransactionError, TxResult, TxStatus
from .wyvern import Exchange, Order, OrderParams, OrderSide

__all__ = [
    "ApprovalOutcome",
    "Exchange",
    "Order",
    "OrderParams",
    "OrderSide",
    "ProxyApprovalChecker",
    "Signer",
    "TransactionError",
    "TxResult",
    "TxStatus",
    "ensure_proxy_approved",
]

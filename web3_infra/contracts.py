"""ABI fragments and per-chain contract addresses for Wyvern v2 trading."""

from __future__ import annotations

from config.settings import Settings, settings
from core.errors import UnsupportedChainError

# ── ABI fragments ───────────────────────────────────────────────────

ERC721_ABI = [
    {
        "name": "ownerOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "outputs": [{"name": "", "type": "address"}],
    },
    {
        "name": "getApproved",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "outputs": [{"name": "", "type": "address"}],
    },
    {
        "name": "isApprovedForAll",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "operator", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "name": "setApprovalForAll",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "operator", "type": "address"},
            {"name": "approved", "type": "bool"},
        ],
        "outputs": [],
    },
]

PROXY_REGISTRY_ABI = [
    {
        "name": "proxies",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "", "type": "address"}],
        "outputs": [{"name": "", "type": "address"}],
    },
    {
        "name": "registerProxy",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [],
        "outputs": [{"name": "", "type": "address"}],
    },
]

# Wyvern v2.2 exchange, match entry point only
WYVERN_EXCHANGE_ABI = [
    {
        "name": "atomicMatch_",
        "type": "function",
        "stateMutability": "payable",
        "inputs": [
            {"name": "addrs", "type": "address[14]"},
            {"name": "uints", "type": "uint256[18]"},
            {"name": "feeMethodsSidesKindsHowToCalls", "type": "uint8[8]"},
            {"name": "calldataBuy", "type": "bytes"},
            {"name": "calldataSell", "type": "bytes"},
            {"name": "replacementPatternBuy", "type": "bytes"},
            {"name": "replacementPatternSell", "type": "bytes"},
            {"name": "staticExtradataBuy", "type": "bytes"},
            {"name": "staticExtradataSell", "type": "bytes"},
            {"name": "vs", "type": "uint8[2]"},
            {"name": "rssMetadata", "type": "bytes32[5]"},
        ],
        "outputs": [],
    },
]


# ── Address lookup ──────────────────────────────────────────────────


def proxy_registry_address(chain_id: int, config: Settings | None = None) -> str:
    """Return the proxy registry address configured for ``chain_id``."""
    config = config or settings
    try:
        return config.PROXY_REGISTRY_ADDRESSES[chain_id]
    except KeyError:
        raise UnsupportedChainError(
            f"No proxy registry configured for chain {chain_id}"
        ) from None


def exchange_address(chain_id: int, config: Settings | None = None) -> str:
    """Return the Wyvern exchange address configured for ``chain_id``."""
    config = config or settings
    try:
        return config.EXCHANGE_ADDRESSES[chain_id]
    except KeyError:
        raise UnsupportedChainError(
            f"No Wyvern exchange configured for chain {chain_id}"
        ) from None

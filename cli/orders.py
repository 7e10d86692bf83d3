"""Orders CLI — accept offers and list tokens from the command line.

Reads the RPC endpoint, private key and API settings from the
environment / ``.env`` (see ``config/settings.py``).

Usage:
    python3 -m cli.orders accept --contract <address> --token-id <id>
    python3 -m cli.orders list --contract <address> --token-id <id> --price <wei>
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

import structlog
from web3 import AsyncHTTPProvider, AsyncWeb3

from config.settings import settings
from core.logger import setup_logging
from execution.accept_offer import OfferAcceptor
from execution.listing import Lister
from models.query import BuildOrderQuery, FillOrderQuery
from models.workflow import WorkflowResult
from web3_infra.signer import Signer

logger = structlog.get_logger("cli.orders")


def _make_signer() -> Signer:
    if not settings.PRIVATE_KEY:
        print("ERROR: PRIVATE_KEY is not set")
        sys.exit(1)
    w3 = AsyncWeb3(AsyncHTTPProvider(settings.RPC_URL))
    return Signer.from_private_key(w3, settings.PRIVATE_KEY)


def _chain_id(args: argparse.Namespace) -> int:
    return args.chain_id if args.chain_id is not None else settings.CHAIN_ID


async def cmd_accept(args: argparse.Namespace, signer: Signer) -> WorkflowResult:
    """Sell the token into its best offer."""
    query = FillOrderQuery(contract=args.contract, token_id=args.token_id)
    acceptor = OfferAcceptor(settings.RESERVOIR_API_BASE, _chain_id(args))
    return await acceptor.run(signer, query)


async def cmd_list(args: argparse.Namespace, signer: Signer) -> WorkflowResult:
    """List the token for sale at ``--price`` wei."""
    query = BuildOrderQuery(
        contract=args.contract,
        token_id=args.token_id,
        maker=signer.address,
        side="sell",
        price=args.price,
        expiration_time=args.expiration,
    )
    lister = Lister(settings.RESERVOIR_API_BASE, _chain_id(args))
    return await lister.run(signer, query)


COMMANDS: dict[str, Any] = {
    "accept": cmd_accept,
    "list": cmd_list,
}


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        description="Accept offers and list ERC721 tokens on Wyvern v2",
        prog="orders",
    )
    parser.add_argument(
        "--chain-id",
        type=int,
        default=None,
        help="Chain id (default: CHAIN_ID setting)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Debug logging, including HTTP and RPC traffic",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    sub_accept = subparsers.add_parser("accept", help="Accept the best offer on a token")
    sub_accept.add_argument("--contract", required=True, help="Collection address")
    sub_accept.add_argument("--token-id", required=True, help="Token id")

    sub_list = subparsers.add_parser("list", help="List a token for sale")
    sub_list.add_argument("--contract", required=True, help="Collection address")
    sub_list.add_argument("--token-id", required=True, help="Token id")
    sub_list.add_argument("--price", required=True, help="Price in wei")
    sub_list.add_argument(
        "--expiration",
        default=None,
        help="Expiration as a unix timestamp (default: API default)",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Exit code 0 on success, 1 otherwise."""
    parser = build_parser()
    args = parser.parse_args(argv)

    handler = COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    setup_logging(level="DEBUG" if args.verbose else None)
    signer = _make_signer()
    result = asyncio.run(handler(args, signer))

    print(json.dumps(result.to_dict(), indent=2))
    logger.info("cli.done", command=args.command, state=result.state.value)
    return 0 if result else 1


if __name__ == "__main__":
    sys.exit(main())

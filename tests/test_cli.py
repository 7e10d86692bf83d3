"""Tests for cli/orders.py."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import pytest

from cli import orders
from models.workflow import WorkflowResult, WorkflowState

from fakes import COLLECTION, OWNER_KEY, TOKEN_ID, FakeSigner


@pytest.fixture
def cli_signer(chain) -> FakeSigner:
    return FakeSigner(chain, OWNER_KEY)


class TestParser:

    def test_accept_args(self) -> None:
        args = orders.build_parser().parse_args(
            ["--chain-id", "4", "accept", "--contract", COLLECTION, "--token-id", "42"]
        )
        assert args.command == "accept"
        assert args.chain_id == 4
        assert args.token_id == "42"

    def test_list_requires_price(self) -> None:
        with pytest.raises(SystemExit):
            orders.build_parser().parse_args(
                ["list", "--contract", COLLECTION, "--token-id", "42"]
            )

    def test_no_command_prints_help(self, capsys) -> None:
        assert orders.main([]) == 1
        assert "usage" in capsys.readouterr().out


class TestCommands:

    @pytest.mark.asyncio
    async def test_list_builds_sell_query(self, cli_signer) -> None:
        args = orders.build_parser().parse_args(
            ["list", "--contract", COLLECTION, "--token-id", str(TOKEN_ID), "--price", "5"]
        )
        run = AsyncMock(return_value=WorkflowResult(state=WorkflowState.SUCCESS))
        with patch.object(orders.Lister, "run", run):
            result = await orders.cmd_list(args, cli_signer)

        assert result
        signer, query = run.await_args.args
        assert signer is cli_signer
        assert query.side == "sell"
        assert query.maker == cli_signer.address
        assert query.price == "5"
        assert query.token_id == str(TOKEN_ID)

    def test_main_prints_result_and_exit_code(self, cli_signer, capsys) -> None:
        failed = WorkflowResult(state=WorkflowState.FETCH_FAILED)
        with patch.object(orders, "setup_logging"), patch.object(orders, "logger"), \
                patch.object(orders, "_make_signer", return_value=cli_signer), \
                patch.object(orders.OfferAcceptor, "run", AsyncMock(return_value=failed)):
            code = orders.main(["accept", "--contract", COLLECTION, "--token-id", "42"])

        assert code == 1
        printed = json.loads(capsys.readouterr().out)
        assert printed["state"] == "FETCH_FAILED"
        assert printed["success"] is False

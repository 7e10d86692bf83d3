"""Failure taxonomy shared by the approval, fetch and execution stages.

Top-level workflows never let these escape; they are raised inside a stage,
caught at the stage boundary, logged, and folded into a ``WorkflowResult``.
"""

from __future__ import annotations

from enum import Enum


class FailureKind(str, Enum):
    """Why a workflow stopped short of success."""

    INVALID_INPUT = "INVALID_INPUT"
    NOT_TOKEN_OWNER = "NOT_TOKEN_OWNER"
    APPROVAL_FAILURE = "APPROVAL_FAILURE"
    ORDER_FETCH_FAILURE = "ORDER_FETCH_FAILURE"
    EXECUTION_FAILURE = "EXECUTION_FAILURE"


class WorkflowError(Exception):
    """Base class; ``kind`` tells which stage failed."""

    kind: FailureKind = FailureKind.EXECUTION_FAILURE


class InvalidInputError(WorkflowError, ValueError):
    kind = FailureKind.INVALID_INPUT


class NotTokenOwnerError(WorkflowError):
    kind = FailureKind.NOT_TOKEN_OWNER

    def __init__(self, owner: str, signer: str) -> None:
        super().__init__(f"Signer {signer} is not the token owner ({owner})")
        self.owner = owner
        self.signer = signer


class ApprovalError(WorkflowError):
    kind = FailureKind.APPROVAL_FAILURE


class OrderFetchError(WorkflowError):
    kind = FailureKind.ORDER_FETCH_FAILURE


class MissingOrderParams(OrderFetchError):
    """The API answered without ``order.params``."""


class ExecutionError(WorkflowError):
    kind = FailureKind.EXECUTION_FAILURE


class UnsupportedChainError(WorkflowError, ValueError):
    """No contract address is configured for the chain id."""

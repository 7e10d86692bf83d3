"""WorkflowResult — tagged outcome of an accept-offer or listing run."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from core.errors import FailureKind


class WorkflowState(str, Enum):
    """Stages of an order workflow. Transitions only move forward."""

    IDLE = "IDLE"
    CHECKING_APPROVAL = "CHECKING_APPROVAL"
    APPROVAL_DENIED = "APPROVAL_DENIED"
    FETCHING_ORDER = "FETCHING_ORDER"
    FETCH_FAILED = "FETCH_FAILED"
    EXECUTING = "EXECUTING"
    EXECUTION_FAILED = "EXECUTION_FAILED"
    SUCCESS = "SUCCESS"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset({
    WorkflowState.APPROVAL_DENIED,
    WorkflowState.FETCH_FAILED,
    WorkflowState.EXECUTION_FAILED,
    WorkflowState.SUCCESS,
})

# Allowed successor states; IDLE may also stop on invalid input.
TRANSITIONS: dict[WorkflowState, frozenset[WorkflowState]] = {
    WorkflowState.IDLE: frozenset({
        WorkflowState.CHECKING_APPROVAL,
        WorkflowState.APPROVAL_DENIED,
    }),
    WorkflowState.CHECKING_APPROVAL: frozenset({
        WorkflowState.APPROVAL_DENIED,
        WorkflowState.FETCHING_ORDER,
    }),
    WorkflowState.FETCHING_ORDER: frozenset({
        WorkflowState.FETCH_FAILED,
        WorkflowState.EXECUTING,
    }),
    WorkflowState.EXECUTING: frozenset({
        WorkflowState.EXECUTION_FAILED,
        WorkflowState.SUCCESS,
    }),
}


@dataclass(frozen=True)
class WorkflowResult:
    """Outcome of a workflow run. Truthy only on success."""

    state: WorkflowState
    error: FailureKind | None = None
    detail: str | None = None
    tx_hashes: tuple[str, ...] = field(default_factory=tuple)

    @property
    def success(self) -> bool:
        return self.state == WorkflowState.SUCCESS

    def __bool__(self) -> bool:
        return self.success

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "success": self.success,
            "error": self.error.value if self.error else None,
            "detail": self.detail,
            "tx_hashes": list(self.tx_hashes),
        }


class WorkflowTracker:
    """Walks the state machine and rejects backward or skipped steps."""

    def __init__(self) -> None:
        self._state = WorkflowState.IDLE
        self._tx_hashes: list[str] = []

    @property
    def state(self) -> WorkflowState:
        return self._state

    def advance(self, new_state: WorkflowState) -> None:
        allowed = TRANSITIONS.get(self._state, frozenset())
        if new_state not in allowed:
            raise RuntimeError(
                f"Illegal workflow transition {self._state.value} -> {new_state.value}"
            )
        self._state = new_state

    def record_tx(self, *tx_hashes: str) -> None:
        self._tx_hashes.extend(h for h in tx_hashes if h)

    def finish(
        self,
        state: WorkflowState,
        error: FailureKind | None = None,
        detail: str | None = None,
    ) -> WorkflowResult:
        self.advance(state)
        return WorkflowResult(
            state=state,
            error=error,
            detail=detail,
            tx_hashes=tuple(self._tx_hashes),
        )

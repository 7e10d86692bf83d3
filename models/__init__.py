"""NFT orders — models package."""

from .query import BuildOrderQuery, FillOrderQuery, coerce_query
from .workflow import WorkflowResult, WorkflowState, WorkflowTracker

__all__ = [
    "BuildOrderQuery",
    "FillOrderQuery",
    "WorkflowResult",
    "WorkflowState",
    "WorkflowTracker",
    "coerce_query",
]

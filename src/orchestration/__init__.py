"""Net pay pipeline: stage ordering, orchestration and comparison."""

from src.orchestration.aggregator import NetPayAggregator
from src.orchestration.comparison import VarianceItem, compare_breakdowns
from src.orchestration.state_machine import (
    PipelineStateMachine,
    TransitionNotAllowed,
)

__all__ = [
    "NetPayAggregator",
    "PipelineStateMachine",
    "TransitionNotAllowed",
    "VarianceItem",
    "compare_breakdowns",
]

"""
Diagnostic Orchestration Pipeline

Explicit state machine driving Vision → Registry → Retrieval → Synthesis,
independent of any rendering layer. Progress is exposed as polled snapshots
or observer callbacks.
"""
from .stages import (
    PipelineStage,
    FailurePolicy,
    StageOutcome,
    PipelineResult,
    CancellationToken,
    STAGE_FAILURE_POLICY,
    STAGE_PERCENT_CEILING,
)
from .progress import ProgressState, ProgressSnapshot, LOG_CAPACITY
from .controller import PipelineController

__all__ = [
    "PipelineStage",
    "FailurePolicy",
    "StageOutcome",
    "PipelineResult",
    "CancellationToken",
    "STAGE_FAILURE_POLICY",
    "STAGE_PERCENT_CEILING",
    "ProgressState",
    "ProgressSnapshot",
    "LOG_CAPACITY",
    "PipelineController",
]

"""
Pipeline Stages — Base Types

Stage identities, the per-stage failure policy table, per-stage outcome
values, the terminal PipelineResult and the cooperative cancellation token.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar, TYPE_CHECKING

from oncovector.core.analysis import AnalysisResult, PatientQuery
from oncovector.core.collaborators.base import RegistryNodeHealth
from oncovector.core.retrieval import RankedCase
from oncovector.utils import (
    OncoVectorError,
    ClassificationError,
    RegistryUnavailableError,
    RetrievalError,
    SynthesisError,
)

if TYPE_CHECKING:
    from .progress import ProgressSnapshot

T = TypeVar("T")


class PipelineStage(str, Enum):
    """
    Controller state.

    IDLE → VISION → REGISTRY → RETRIEVAL → SYNTHESIS → DONE, and any
    working stage → FAILED. DONE and FAILED are terminal for a run.
    """
    IDLE = "idle"
    VISION = "vision"
    REGISTRY = "registry"
    RETRIEVAL = "retrieval"
    SYNTHESIS = "synthesis"
    DONE = "done"
    FAILED = "failed"

    @property
    def label(self) -> str:
        return self.value.title()

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineStage.DONE, PipelineStage.FAILED)


class FailurePolicy(str, Enum):
    CONTINUE = "continue"   # log, proceed without the stage's output
    ABORT = "abort"         # terminate the run as FAILED


# Imaging is supplementary evidence; everything downstream needs the registry
STAGE_FAILURE_POLICY: Dict[PipelineStage, FailurePolicy] = {
    PipelineStage.VISION: FailurePolicy.CONTINUE,
    PipelineStage.REGISTRY: FailurePolicy.ABORT,
    PipelineStage.RETRIEVAL: FailurePolicy.ABORT,
    PipelineStage.SYNTHESIS: FailurePolicy.ABORT,
}

# Highest percent a stage may report before the next stage starts
STAGE_PERCENT_CEILING: Dict[PipelineStage, int] = {
    PipelineStage.VISION: 30,
    PipelineStage.REGISTRY: 45,
    PipelineStage.RETRIEVAL: 75,
    PipelineStage.SYNTHESIS: 100,
    PipelineStage.DONE: 100,
}

# Error type an unexpected collaborator exception is wrapped in
STAGE_ERROR_TYPE = {
    PipelineStage.VISION: ClassificationError,
    PipelineStage.REGISTRY: RegistryUnavailableError,
    PipelineStage.RETRIEVAL: RetrievalError,
    PipelineStage.SYNTHESIS: SynthesisError,
}


@dataclass(frozen=True)
class StageOutcome(Generic[T]):
    """Success or failure of one stage; the controller inspects it explicitly."""
    stage: PipelineStage
    value: Optional[T] = None
    error: Optional[OncoVectorError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def policy(self) -> FailurePolicy:
        return STAGE_FAILURE_POLICY[self.stage]

    @classmethod
    def success(cls, stage: PipelineStage, value: Optional[T] = None) -> "StageOutcome[T]":
        return cls(stage=stage, value=value)

    @classmethod
    def failure(cls, stage: PipelineStage, error: OncoVectorError) -> "StageOutcome[T]":
        return cls(stage=stage, error=error)


class CancellationToken:
    """Cooperative cancel flag, checked by the controller between stages."""

    def __init__(self):
        self._cancelled = False
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "Analysis cancelled by user") -> None:
        self._cancelled = True
        self.reason = reason

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled


@dataclass
class PipelineResult:
    """
    Terminal value of one run: exactly one of `analysis` or `error`.

    `query` is the caller's original (frozen) intake so a failed run can be
    resubmitted without re-entry.
    """
    query: PatientQuery
    status: PipelineStage
    analysis: Optional[AnalysisResult] = None
    error: Optional[OncoVectorError] = None
    failed_stage: Optional[PipelineStage] = None
    anatomy_context: str = ""
    retrieval_query: Optional[str] = None
    registry_health: List[RegistryNodeHealth] = field(default_factory=list)
    ranked_cases: List[RankedCase] = field(default_factory=list)
    progress: Optional["ProgressSnapshot"] = None

    def __post_init__(self):
        if (self.analysis is None) == (self.error is None):
            raise ValueError("PipelineResult needs exactly one of analysis or error")
        expected = PipelineStage.DONE if self.analysis is not None else PipelineStage.FAILED
        if self.status != expected:
            raise ValueError(f"PipelineResult status {self.status.value} does not match its payload")

    @property
    def succeeded(self) -> bool:
        return self.status == PipelineStage.DONE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "analysis": self.analysis.to_dict() if self.analysis else None,
            "error": self.error.to_dict() if self.error else None,
            "failed_stage": self.failed_stage.value if self.failed_stage else None,
            "anatomy_context": self.anatomy_context,
            "retrieval_query": self.retrieval_query,
            "registry_health": [n.to_dict() for n in self.registry_health],
            "ranked_cases": [c.to_dict() for c in self.ranked_cases],
            "progress": self.progress.to_dict() if self.progress else None,
            "query": self.query.to_dict(),
        }

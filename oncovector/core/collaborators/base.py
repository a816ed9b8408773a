"""
Collaborator Interfaces

The three external services the pipeline consumes. Each has a demo
implementation (offline, deterministic) and a live one; which set is used
is decided once, by configuration, in factory.build_collaborators().
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Sequence

from oncovector.core.analysis import AnalysisResult, ImageInput, PatientQuery
from oncovector.core.retrieval import RankedCase


class NodeStatus(str, Enum):
    ONLINE = "online"
    DEGRADED = "degraded"
    OFFLINE = "offline"


@dataclass(frozen=True)
class RegistryNodeHealth:
    node_name: str
    status: NodeStatus
    latency_ms: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node_name": self.node_name,
            "status": self.status.value,
            "latency_ms": self.latency_ms,
        }


class AnatomyClassifier(ABC):
    """Image → anatomy label (e.g. "Lung", "Skin")."""

    @abstractmethod
    async def classify(self, image: ImageInput) -> str:
        """
        Raises:
            ClassificationError: the image could not be classified.
        """


class RegistryHealthProbe(ABC):
    """Reachability of the reference registry nodes."""

    @abstractmethod
    async def check(self) -> List[RegistryNodeHealth]:
        """
        Raises:
            RegistryUnavailableError: the registry cannot be reached.
        """


class ReasoningSynthesizer(ABC):
    """Patient query + ranked reference cases → clinical report."""

    @abstractmethod
    async def synthesize(self, query: PatientQuery, ranked_cases: Sequence[RankedCase]) -> AnalysisResult:
        """
        Raises:
            SynthesisError: no report could be produced.
        """


@dataclass
class Collaborators:
    classifier: AnatomyClassifier
    health_probe: RegistryHealthProbe
    synthesizer: ReasoningSynthesizer
    mode: str = "demo"

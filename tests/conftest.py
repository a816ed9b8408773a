"""
Pytest Configuration and Fixtures

Shared fixtures for diagnostic pipeline tests: the built-in case registry,
sample patient queries and scriptable collaborator fakes.
"""
import os

# Force offline collaborators before any oncovector module reads settings
os.environ["DEMO_MODE"] = "true"

import pytest
from typing import List, Optional, Sequence

from oncovector.core.analysis import AnalysisResult, ImageInput, PatientQuery
from oncovector.core.collaborators import (
    AnatomyClassifier,
    DemoReasoningSynthesizer,
    DemoRegistryHealthProbe,
    NodeStatus,
    ReasoningSynthesizer,
    RegistryHealthProbe,
    RegistryNodeHealth,
)
from oncovector.core.pipeline import PipelineController
from oncovector.core.registry import CaseRegistry, Gender, load_registry
from oncovector.core.retrieval import RankedCase


class StaticClassifier(AnatomyClassifier):
    """Returns a fixed label, or raises the configured error."""

    def __init__(self, label: str = "Skin", error: Optional[Exception] = None):
        self.label = label
        self.error = error
        self.calls: List[ImageInput] = []

    async def classify(self, image: ImageInput) -> str:
        self.calls.append(image)
        if self.error is not None:
            raise self.error
        return self.label


class StaticProbe(RegistryHealthProbe):
    def __init__(self, nodes: Optional[List[RegistryNodeHealth]] = None, error: Optional[Exception] = None):
        self.nodes = nodes if nodes is not None else [
            RegistryNodeHealth("NIH Clinical Center", NodeStatus.ONLINE, 40),
            RegistryNodeHealth("TCIA - NLST", NodeStatus.ONLINE, 55),
            RegistryNodeHealth("ISIC Archive", NodeStatus.DEGRADED, 1900),
        ]
        self.error = error
        self.calls = 0

    async def check(self) -> List[RegistryNodeHealth]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.nodes)


class RecordingSynthesizer(ReasoningSynthesizer):
    """Delegates to the template synthesizer and records what it was given."""

    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls: List[tuple] = []
        self._inner = DemoReasoningSynthesizer()

    async def synthesize(self, query: PatientQuery, ranked_cases: Sequence[RankedCase]) -> AnalysisResult:
        self.calls.append((query, list(ranked_cases)))
        if self.error is not None:
            raise self.error
        return await self._inner.synthesize(query, ranked_cases)


@pytest.fixture
def registry() -> CaseRegistry:
    """Built-in reference case registry."""
    return load_registry()


@pytest.fixture
def symptom_query() -> PatientQuery:
    """Symptoms only, no imagery."""
    return PatientQuery(age=55, gender=Gender.FEMALE, symptoms="irregular mole")


@pytest.fixture
def lung_image() -> ImageInput:
    return ImageInput(data=b"\x89PNG\r\n\x1a\nfake-image-bytes", mime_type="image/png", filename="chest_lung.png")


@pytest.fixture
def imaging_query(lung_image) -> PatientQuery:
    """Imagery only, no symptoms."""
    return PatientQuery(age=40, gender=Gender.MALE, symptoms="", images=(lung_image,))


@pytest.fixture
def make_controller(registry):
    """Factory for controllers with scriptable collaborators."""

    def _make(
        classifier: Optional[AnatomyClassifier] = None,
        probe: Optional[RegistryHealthProbe] = None,
        synthesizer: Optional[ReasoningSynthesizer] = None,
        case_registry: Optional[CaseRegistry] = None,
        **kwargs,
    ) -> PipelineController:
        return PipelineController(
            registry=case_registry if case_registry is not None else registry,
            classifier=classifier or StaticClassifier(),
            health_probe=probe or DemoRegistryHealthProbe(seed=7),
            synthesizer=synthesizer or RecordingSynthesizer(),
            **kwargs,
        )

    return _make

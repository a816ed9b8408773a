"""
External Collaborators

Anatomy classification, registry health probing and clinical synthesis,
each behind an abstract interface with demo and live implementations.
"""
from .base import (
    AnatomyClassifier,
    RegistryHealthProbe,
    ReasoningSynthesizer,
    RegistryNodeHealth,
    NodeStatus,
    Collaborators,
)
from .anatomy import DemoAnatomyClassifier, GeminiAnatomyClassifier
from .health_probe import DemoRegistryHealthProbe, HttpRegistryHealthProbe
from .synthesizer import DemoReasoningSynthesizer, GeminiReasoningSynthesizer
from .factory import build_collaborators

__all__ = [
    "AnatomyClassifier",
    "RegistryHealthProbe",
    "ReasoningSynthesizer",
    "RegistryNodeHealth",
    "NodeStatus",
    "Collaborators",
    "DemoAnatomyClassifier",
    "GeminiAnatomyClassifier",
    "DemoRegistryHealthProbe",
    "HttpRegistryHealthProbe",
    "DemoReasoningSynthesizer",
    "GeminiReasoningSynthesizer",
    "build_collaborators",
]

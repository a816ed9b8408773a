"""
API schemas
"""
from .analysis import (
    ImagePayload,
    AnalyzeRequest,
    HealthResponse,
    ProgressResponse,
    RegistryNodeResponse,
    RegistryHealthResponse,
    CancelResponse,
)

__all__ = [
    "ImagePayload",
    "AnalyzeRequest",
    "HealthResponse",
    "ProgressResponse",
    "RegistryNodeResponse",
    "RegistryHealthResponse",
    "CancelResponse",
]

"""
Utilities Package - Logging and Exception Handling
"""
from .logging import get_logger, setup_logging
from .exceptions import (
    OncoVectorError,
    ValidationError,
    ClassificationError,
    RegistryUnavailableError,
    RetrievalError,
    EmptyRegistryError,
    SynthesisError,
    PipelineCancelledError,
    RegistryLoadError,
    ProgressInvariantError,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "OncoVectorError",
    "ValidationError",
    "ClassificationError",
    "RegistryUnavailableError",
    "RetrievalError",
    "EmptyRegistryError",
    "SynthesisError",
    "PipelineCancelledError",
    "RegistryLoadError",
    "ProgressInvariantError",
]

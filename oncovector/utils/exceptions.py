"""
Custom Exception Hierarchy

Domain errors raised by the diagnostic pipeline and its collaborators.
Every user-facing error carries a code, a message and structured details,
plus the HTTP status the API layer answers with.
"""
from typing import Optional, Dict, Any


class OncoVectorError(Exception):
    """Base exception for all pipeline errors."""

    http_status: int = 500

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details
        }


class ValidationError(OncoVectorError):
    """Patient query failed its precondition; the pipeline never starts."""

    http_status = 400

    def __init__(
        self,
        message: str,
        field: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            details={"field": field, **(details or {})}
        )
        self.field = field


class ClassificationError(OncoVectorError):
    """Anatomy classification failed. Non-fatal to the pipeline."""

    http_status = 502

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="CLASSIFICATION_ERROR", details=details)


class RegistryUnavailableError(OncoVectorError):
    """The case registry nodes could not be reached."""

    http_status = 503

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="REGISTRY_UNAVAILABLE", details=details)


class RetrievalError(OncoVectorError):
    """Case ranking failed."""

    http_status = 500

    def __init__(
        self,
        message: str,
        code: str = "RETRIEVAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message=message, code=code, details=details)


class EmptyRegistryError(RetrievalError):
    """Retrieval was asked to rank against a registry with no cases."""

    def __init__(
        self,
        message: str = "Case registry is empty - no reference cases to rank",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message=message, code="EMPTY_REGISTRY", details=details)


class SynthesisError(OncoVectorError):
    """The reasoning synthesizer could not produce a report."""

    http_status = 502

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="SYNTHESIS_ERROR", details=details)


class PipelineCancelledError(OncoVectorError):
    """The run was cancelled between stages."""

    http_status = 499

    def __init__(self, message: str = "Analysis cancelled", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="PIPELINE_CANCELLED", details=details)


class RegistryLoadError(OncoVectorError):
    """Reference case data could not be loaded."""

    def __init__(
        self,
        message: str,
        source: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="REGISTRY_LOAD_ERROR",
            details={"source": source, **(details or {})}
        )
        self.source = source


class ProgressInvariantError(AssertionError):
    """
    Progress would move backwards within a run.

    Programmer error: a correct controller never triggers it, so it is
    deliberately outside the OncoVectorError hierarchy and is never turned
    into a user-facing failure.
    """

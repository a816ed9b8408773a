"""
Analysis Data Contracts

Patient input and synthesized report types shared by the pipeline and its
collaborators.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from oncovector.core.registry import Gender
from oncovector.core.retrieval import RankedCase
from oncovector.utils import ValidationError

# A risk score above this is reported as a high confidence match
HIGH_CONFIDENCE_RISK_THRESHOLD = 50


@dataclass(frozen=True)
class ImageInput:
    """One uploaded diagnostic image."""
    data: bytes
    mime_type: str = "image/jpeg"
    filename: Optional[str] = None

    def __repr__(self) -> str:
        return f"ImageInput(filename={self.filename!r}, mime_type={self.mime_type!r}, bytes={len(self.data)})"


@dataclass(frozen=True)
class PatientQuery:
    """
    Clinical intake for one case.

    Frozen so that a failed run leaves the caller's data untouched for retry.
    """
    age: Optional[int]
    gender: Gender = Gender.FEMALE
    symptoms: str = ""
    history: str = ""
    anatomy_hint: Optional[str] = None
    images: Tuple[ImageInput, ...] = ()

    @property
    def has_imagery(self) -> bool:
        return len(self.images) > 0

    @property
    def has_symptoms(self) -> bool:
        return bool(self.symptoms and self.symptoms.strip())

    @property
    def primary_image(self) -> Optional[ImageInput]:
        return self.images[0] if self.images else None

    def validate(self) -> None:
        """
        Check the intake precondition.

        Raises:
            ValidationError: age missing/non-positive, or neither symptoms
                nor imagery provided.
        """
        if self.age is None or isinstance(self.age, bool) or not isinstance(self.age, int) or self.age <= 0:
            raise ValidationError("Please provide patient age.", field="age")
        if not self.has_symptoms and not self.has_imagery:
            raise ValidationError(
                "Please provide either clinical symptoms OR upload diagnostic imagery.",
                field="symptoms",
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "age": self.age,
            "gender": self.gender.value,
            "symptoms": self.symptoms,
            "history": self.history,
            "anatomy_hint": self.anatomy_hint,
            "image_count": len(self.images),
        }


@dataclass(frozen=True)
class WebSource:
    uri: str
    title: str

    def to_dict(self) -> Dict[str, str]:
        return {"uri": self.uri, "title": self.title}


@dataclass
class AnalysisResult:
    """Clinical synthesis for a completed run."""
    risk_score: int
    confidence_score: int
    potential_diagnoses: List[str] = field(default_factory=list)
    reasoning: str = ""
    recommended_tests: List[str] = field(default_factory=list)
    visual_evidence: List[str] = field(default_factory=list)
    missing_information: List[str] = field(default_factory=list)
    cited_sources: List[WebSource] = field(default_factory=list)
    matched_cases: List[RankedCase] = field(default_factory=list)
    high_confidence_match: bool = False
    is_mock: bool = False

    def __post_init__(self):
        self.risk_score = _clamp_percent(self.risk_score)
        self.confidence_score = _clamp_percent(self.confidence_score)

    @property
    def primary_diagnosis(self) -> Optional[str]:
        return self.potential_diagnoses[0] if self.potential_diagnoses else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "risk_score": self.risk_score,
            "confidence_score": self.confidence_score,
            "high_confidence_match": self.high_confidence_match,
            "potential_diagnoses": self.potential_diagnoses,
            "reasoning": self.reasoning,
            "recommended_tests": self.recommended_tests,
            "visual_evidence": self.visual_evidence,
            "missing_information": self.missing_information,
            "cited_sources": [s.to_dict() for s in self.cited_sources],
            "matched_cases": [c.to_dict() for c in self.matched_cases],
            "is_mock": self.is_mock,
        }


def _clamp_percent(value: Any) -> int:
    return int(min(100, max(0, round(float(value)))))

"""
Reasoning Synthesizers

Turn the patient intake plus the ranked reference cases into a clinical
synthesis: differential diagnoses, risk and confidence scores, reasoning,
recommended tests and cited sources.
"""
import json
import re
from typing import Dict, List, Sequence

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from oncovector.core.analysis import AnalysisResult, PatientQuery, WebSource
from oncovector.core.llm import GeminiClient
from oncovector.core.retrieval import RankedCase
from oncovector.utils import get_logger, SynthesisError
from .base import ReasoningSynthesizer

logger = get_logger(__name__)

BENIGN_MARKERS = ("nevus", "granuloma", "benign", "cyst", "lipoma")

RECOMMENDED_TESTS: Dict[str, List[str]] = {
    "melanoma": ["Excisional biopsy with histopathology", "Dermoscopy", "Sentinel lymph node assessment"],
    "nevus": ["Dermoscopic surveillance", "Excisional biopsy if evolving"],
    "basal cell": ["Shave or punch biopsy", "Mohs surgical consultation"],
    "squamous": ["Punch biopsy", "Regional lymph node examination"],
    "lung": ["Contrast-enhanced chest CT", "PET-CT staging", "CT-guided or bronchoscopic biopsy"],
    "granuloma": ["Comparison with prior imaging", "Follow-up chest radiograph"],
    "ductal carcinoma": ["Diagnostic mammography", "Targeted breast ultrasound", "Core needle biopsy"],
    "breast": ["Diagnostic mammography", "Targeted breast ultrasound", "Core needle biopsy"],
    "glioblastoma": ["Contrast-enhanced brain MRI", "Neurosurgical biopsy", "MGMT methylation testing"],
    "colorectal": ["Colonoscopy with biopsy", "CEA level", "CT chest/abdomen/pelvis staging"],
    "pancrea": ["Pancreatic protocol CT", "Endoscopic ultrasound with FNA", "CA 19-9 level"],
    "thyroid": ["Thyroid ultrasound", "Fine needle aspiration", "Thyroid function tests"],
}
DEFAULT_TESTS = ["Specialist referral", "Targeted imaging of the affected region", "Tissue biopsy if lesion persists"]


def _is_benign(diagnosis: str) -> bool:
    lowered = diagnosis.lower()
    return any(marker in lowered for marker in BENIGN_MARKERS)


def _tests_for(diagnosis: str) -> List[str]:
    lowered = diagnosis.lower()
    for key, tests in RECOMMENDED_TESTS.items():
        if key in lowered:
            return list(tests)
    return list(DEFAULT_TESTS)


def case_sources(ranked_cases: Sequence[RankedCase]) -> List[WebSource]:
    """Registry links of the matched cases, first occurrence of each URI."""
    seen = set()
    sources = []
    for ranked in ranked_cases:
        uri = ranked.case.source_url
        if uri and uri not in seen:
            seen.add(uri)
            sources.append(WebSource(uri=uri, title=ranked.case.source_name or uri))
    return sources


def missing_information(query: PatientQuery) -> List[str]:
    missing = []
    if not query.has_symptoms:
        missing.append("Clinical symptom description")
    if not query.has_imagery:
        missing.append("Diagnostic imagery of the affected region")
    if not query.history.strip():
        missing.append("Relevant medical and family history")
    return missing


class DemoReasoningSynthesizer(ReasoningSynthesizer):
    """Deterministic, template-based synthesis from the ranked cases."""

    MAX_DIAGNOSES = 3

    async def synthesize(self, query: PatientQuery, ranked_cases: Sequence[RankedCase]) -> AnalysisResult:
        if not ranked_cases:
            return AnalysisResult(
                risk_score=0,
                confidence_score=10,
                potential_diagnoses=["Indeterminate - no comparable registry cases"],
                reasoning="No reference cases were comparable to the presented findings. "
                          "Clinical correlation and specialist review are required.",
                recommended_tests=list(DEFAULT_TESTS),
                missing_information=missing_information(query),
                is_mock=True,
            )

        diagnoses: List[str] = []
        for ranked in ranked_cases:
            if ranked.case.diagnosis not in diagnoses:
                diagnoses.append(ranked.case.diagnosis)
        diagnoses = diagnoses[:self.MAX_DIAGNOSES]

        top = ranked_cases[0]
        risk = top.relevance_score * (0.35 if _is_benign(top.case.diagnosis) else 1.0)
        mean_relevance = sum(c.relevance_score for c in ranked_cases) / len(ranked_cases)
        confidence = min(95.0, 0.5 * top.relevance_score + 0.5 * mean_relevance + (10 if query.has_imagery else 0))

        visual_evidence: List[str] = []
        if query.has_imagery:
            visual_evidence = [
                part.strip().rstrip(".").capitalize()
                for part in re.split(r"[,;]| and ", top.case.visual_findings)
                if part.strip()
            ][:4]

        matched = ", ".join(top.matched_terms) or "overall presentation"
        reasoning = (
            f"The presentation of a {query.age}-year-old {query.gender.value.lower()} patient aligns most "
            f"closely with registry case {top.case.id} ({top.case.diagnosis}, relevance "
            f"{top.relevance_score:.1f}/100), matching on: {matched}. "
            f"Reference outcome: {top.case.outcome_summary} "
            f"{len(ranked_cases)} comparable case(s) were reviewed in total."
        )

        return AnalysisResult(
            risk_score=risk,
            confidence_score=confidence,
            potential_diagnoses=diagnoses,
            reasoning=reasoning,
            recommended_tests=_tests_for(top.case.diagnosis),
            visual_evidence=visual_evidence,
            missing_information=missing_information(query),
            cited_sources=case_sources(ranked_cases),
            matched_cases=list(ranked_cases),
            is_mock=True,
        )


class _SourcePayload(BaseModel):
    uri: str
    title: str = ""


class SynthesisPayload(BaseModel):
    """Shape of the JSON the model is instructed to return."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    risk_score: float = Field(alias="riskScore")
    confidence_score: float = Field(alias="confidenceScore")
    potential_diagnoses: List[str] = Field(default_factory=list, alias="potentialDiagnoses")
    reasoning: str = ""
    recommended_tests: List[str] = Field(default_factory=list, alias="recommendedTests")
    visual_evidence: List[str] = Field(default_factory=list, alias="visualEvidence")
    missing_information: List[str] = Field(default_factory=list, alias="missingInformation")
    cited_sources: List[_SourcePayload] = Field(default_factory=list, alias="citedSources")


_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class GeminiReasoningSynthesizer(ReasoningSynthesizer):
    """JSON-mode Gemini synthesis grounded on the ranked registry cases."""

    SYSTEM_INSTRUCTION = """You are an oncology clinical decision support assistant. You compare a patient presentation against verified reference cases from university case registries and produce a structured differential.

CONSTRAINTS:
1. Base your assessment on the provided patient data, any attached images and the reference cases
2. Rank potential diagnoses from most to least likely
3. riskScore is the probability of malignancy (0-100); confidenceScore is your confidence in the assessment (0-100)
4. List critical missing information explicitly
5. This output supports, and never replaces, clinician judgement

Respond ONLY with a JSON object with keys:
riskScore, confidenceScore, potentialDiagnoses, reasoning, recommendedTests,
visualEvidence, missingInformation, citedSources (list of {uri, title})."""

    def __init__(self, client: GeminiClient, max_cases: int = 5):
        self.client = client
        self.max_cases = max_cases

    async def synthesize(self, query: PatientQuery, ranked_cases: Sequence[RankedCase]) -> AnalysisResult:
        response = await self.client.generate_async(
            self._build_prompt(query, ranked_cases),
            system_instruction=self.SYSTEM_INSTRUCTION,
            images=[(img.data, img.mime_type) for img in query.images],
        )
        if response.is_mock:
            raise SynthesisError(
                f"Clinical synthesis unavailable: {response.error}",
                details={"model": response.model},
            )

        payload = self._parse(response.text)
        sources = case_sources(ranked_cases)
        known = {s.uri for s in sources}
        for cited in payload.cited_sources:
            if cited.uri not in known:
                known.add(cited.uri)
                sources.append(WebSource(uri=cited.uri, title=cited.title or cited.uri))

        logger.info(
            f"Synthesis complete in {response.latency_ms:.0f} ms: "
            f"{len(payload.potential_diagnoses)} diagnoses, risk {payload.risk_score:.0f}"
        )
        return AnalysisResult(
            risk_score=payload.risk_score,
            confidence_score=payload.confidence_score,
            potential_diagnoses=payload.potential_diagnoses,
            reasoning=payload.reasoning,
            recommended_tests=payload.recommended_tests,
            visual_evidence=payload.visual_evidence,
            missing_information=payload.missing_information,
            cited_sources=sources,
            matched_cases=list(ranked_cases),
        )

    def _build_prompt(self, query: PatientQuery, ranked_cases: Sequence[RankedCase]) -> str:
        lines = [
            "PATIENT PRESENTATION:",
            f"- Age: {query.age}",
            f"- Gender: {query.gender.value}",
            f"- Symptoms: {query.symptoms.strip() or 'Not provided'}",
            f"- History: {query.history.strip() or 'Not provided'}",
            f"- Diagnostic images attached: {len(query.images)}",
        ]
        if query.anatomy_hint:
            lines.append(f"- Clinician anatomy note: {query.anatomy_hint}")
        lines += [
            "",
            "REFERENCE CASES (ranked by relevance):",
        ]
        if not ranked_cases:
            lines.append("- None matched")
        for ranked in ranked_cases[:self.max_cases]:
            case = ranked.case
            lines.extend([
                f"- [{case.id}] {case.title} (relevance {ranked.relevance_score:.1f}/100)",
                f"  Patient: {case.age}y {case.gender.value}; Diagnosis: {case.diagnosis}",
                f"  Symptoms: {', '.join(sorted(case.symptom_tags))}",
                f"  Visual findings: {case.visual_findings}",
                f"  Outcome: {case.outcome_summary}",
                f"  Source: {case.source_name}" + (f" <{case.source_url}>" if case.source_url else ""),
            ])
        return "\n".join(lines)

    @staticmethod
    def _parse(text: str) -> SynthesisPayload:
        cleaned = _FENCE_RE.sub("", (text or "").strip())
        try:
            return SynthesisPayload.model_validate(json.loads(cleaned))
        except (json.JSONDecodeError, PydanticValidationError, TypeError) as e:
            raise SynthesisError(
                f"Could not parse clinical synthesis: {e}",
                details={"raw_response": (text or "")[:500]},
            ) from e

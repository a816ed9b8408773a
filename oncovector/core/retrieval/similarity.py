"""
Similarity Retrieval

Ranks registry cases against a patient query by lexical overlap between the
query terms (plus the imaging anatomy tag, if any) and each case's symptom
tags, diagnosis and visual findings.

Scoring is a pure function of (query, case): no randomness, no clocks, no
mutation. Identical inputs always produce identical rankings.

Score composition (before clamping to [0, 100]):
  - symptom match : best per-tag token coverage          (max 55)
  - breadth       : number of tags matched, saturating    (max 15)
  - diagnosis     : share of diagnosis words in the query (max 15)
  - findings      : share of query terms in the findings  (max 15)
  - anatomy       : imaging anatomy mentioned by the case (max 20)
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Set, Tuple

from oncovector.core.registry import CaseRecord, CaseRegistry
from oncovector.utils import get_logger, EmptyRegistryError

logger = get_logger(__name__)

ANATOMY_TAG_PREFIX = "PATIENT IMAGING ANATOMY"
DEFAULT_VISUAL_QUERY = "visual anomaly suspected malignancy"

DEFAULT_TOP_K = 5
DEFAULT_MIN_RELEVANCE = 20.0

SYMPTOM_WEIGHT = 55.0
BREADTH_WEIGHT = 15.0
DIAGNOSIS_WEIGHT = 15.0
FINDINGS_WEIGHT = 15.0
ANATOMY_WEIGHT = 20.0

# A tag counts as matched once half of its words appear in the query
TAG_MATCH_RATIO = 0.5
BREADTH_SATURATION = 3

_ANATOMY_PREFIX_RE = re.compile(
    r"^\s*\[" + re.escape(ANATOMY_TAG_PREFIX) + r":\s*(?P<anatomy>[^\]]*)\]\s*",
    re.IGNORECASE,
)
_TOKEN_RE = re.compile(r"[a-z0-9]+")

_STOPWORDS = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "but", "by", "for", "from",
    "has", "have", "her", "his", "in", "into", "is", "it", "its", "of", "on",
    "or", "over", "patient", "she", "that", "the", "their", "there", "this",
    "to", "was", "were", "with", "within", "without", "he", "had", "been",
})

# Imaging anatomy labels are coarse; the case text uses clinical synonyms
_ANATOMY_SYNONYMS: Dict[str, FrozenSet[str]] = {
    "lung": frozenset({"lung", "pulmonary", "chest", "thoracic", "bronchus", "hilar"}),
    "chest": frozenset({"chest", "lung", "thoracic", "mediastinal"}),
    "skin": frozenset({"skin", "cutaneous", "mole", "nevus", "nevi", "lesion"}),
    "brain": frozenset({"brain", "cerebral", "cranial", "frontal", "mri"}),
    "head": frozenset({"head", "brain", "cranial"}),
    "breast": frozenset({"breast", "mammary", "nipple"}),
    "colon": frozenset({"colon", "colorectal", "sigmoid", "rectal", "bowel"}),
    "abdomen": frozenset({"abdomen", "abdominal", "pancreatic", "pancreas", "colon", "liver"}),
    "pancreas": frozenset({"pancreas", "pancreatic"}),
    "thyroid": frozenset({"thyroid", "neck"}),
    "neck": frozenset({"neck", "thyroid"}),
}


def _normalize(token: str) -> str:
    """Crude plural folding so 'moles' matches 'mole' and 'nodules' 'nodule'."""
    if len(token) > 4 and token.endswith("ies"):
        return token[:-3] + "y"
    if len(token) > 4 and token.endswith("s") and not token.endswith("ss"):
        return token[:-1]
    return token


def tokenize(text: str) -> Set[str]:
    """Lowercased, stopword-free, plural-folded word set."""
    return {
        _normalize(tok)
        for tok in _TOKEN_RE.findall((text or "").lower())
        if len(tok) >= 3 and tok not in _STOPWORDS
    }


def format_anatomy_tag(anatomy: str) -> str:
    return f"[{ANATOMY_TAG_PREFIX}: {anatomy}] "


@dataclass(frozen=True)
class RetrievalQuery:
    """Free-text retrieval query with an optional imaging anatomy tag."""
    text: str
    anatomy: Optional[str] = None

    @classmethod
    def from_text(cls, text: str) -> "RetrievalQuery":
        """Parse a query string, lifting a leading anatomy tag if present."""
        match = _ANATOMY_PREFIX_RE.match(text or "")
        if match:
            anatomy = match.group("anatomy").strip() or None
            return cls(text=text, anatomy=anatomy)
        return cls(text=text or "")

    @property
    def free_text(self) -> str:
        """The query without its anatomy tag."""
        return _ANATOMY_PREFIX_RE.sub("", self.text, count=1)

    @property
    def terms(self) -> Set[str]:
        return tokenize(self.free_text)

    @property
    def anatomy_terms(self) -> Set[str]:
        if not self.anatomy:
            return set()
        terms: Set[str] = set()
        for tok in tokenize(self.anatomy):
            terms.add(tok)
            terms.update(_ANATOMY_SYNONYMS.get(tok, ()))
        return terms


@dataclass(frozen=True)
class RankedCase:
    """A registry case annotated with its relevance to one query."""
    case: CaseRecord
    relevance_score: float
    rank: int
    matched_terms: Tuple[str, ...] = field(default_factory=tuple)

    def __getattr__(self, name: str) -> Any:
        # Expose CaseRecord fields directly (ranked.diagnosis, ranked.id, ...)
        if name == "case":
            raise AttributeError(name)
        return getattr(self.case, name)

    def to_dict(self) -> Dict[str, Any]:
        data = self.case.to_dict()
        data.update({
            "relevance_score": self.relevance_score,
            "rank": self.rank,
            "matched_terms": list(self.matched_terms),
        })
        return data


@dataclass(frozen=True)
class RetrievalConfig:
    top_k: int = DEFAULT_TOP_K
    min_relevance: float = DEFAULT_MIN_RELEVANCE

    def __post_init__(self):
        if self.top_k < 1:
            raise ValueError("top_k must be at least 1")
        if not 0.0 <= self.min_relevance <= 100.0:
            raise ValueError("min_relevance must be within [0, 100]")


class SimilarityRetriever:
    """
    Deterministic case ranker.

    Stateless apart from its configuration; safe to share across requests.
    """

    def __init__(self, config: Optional[RetrievalConfig] = None):
        self.config = config or RetrievalConfig()

    def score(self, query: RetrievalQuery, case: CaseRecord) -> Tuple[float, Tuple[str, ...]]:
        """
        Relevance of one case to the query.

        Returns:
            (score clamped to [0, 100] and rounded to 0.1, matched terms sorted)
        """
        terms = query.terms
        matched: Set[str] = set()

        best_ratio = 0.0
        tags_matched = 0
        tag_words: Set[str] = set()
        for tag in case.symptom_tags:
            words = tokenize(tag)
            if not words:
                continue
            tag_words |= words
            hit = words & terms
            ratio = len(hit) / len(words)
            best_ratio = max(best_ratio, ratio)
            if ratio >= TAG_MATCH_RATIO:
                tags_matched += 1
                matched |= hit

        symptom = SYMPTOM_WEIGHT * best_ratio
        breadth = BREADTH_WEIGHT * min(tags_matched, BREADTH_SATURATION) / BREADTH_SATURATION

        diagnosis_words = tokenize(case.diagnosis)
        diagnosis_hit = diagnosis_words & terms
        diagnosis = DIAGNOSIS_WEIGHT * len(diagnosis_hit) / len(diagnosis_words) if diagnosis_words else 0.0
        matched |= diagnosis_hit

        findings_words = tokenize(case.visual_findings)
        findings_hit = findings_words & terms
        findings = FINDINGS_WEIGHT * len(findings_hit) / len(terms) if terms else 0.0
        matched |= findings_hit

        anatomy = 0.0
        anatomy_terms = query.anatomy_terms
        if anatomy_terms:
            case_words = tag_words | diagnosis_words | findings_words | tokenize(case.title)
            anatomy_hit = anatomy_terms & case_words
            if anatomy_hit:
                anatomy = ANATOMY_WEIGHT
                matched |= anatomy_hit

        raw = symptom + breadth + diagnosis + findings + anatomy
        return round(min(100.0, max(0.0, raw)), 1), tuple(sorted(matched))

    def rank(self, query: RetrievalQuery, registry: CaseRegistry) -> List[RankedCase]:
        """
        Rank registry cases against the query.

        Returns at most top_k cases ordered by descending score, ties broken
        by ascending case id. When fewer than top_k cases clear the minimum
        relevance floor the floor is relaxed, so a non-empty registry always
        yields min(top_k, len(registry)) cases.

        Raises:
            EmptyRegistryError: the registry holds no cases.
        """
        if len(registry) == 0:
            raise EmptyRegistryError()

        scored = []
        for case in registry:
            value, matched = self.score(query, case)
            scored.append((value, case, matched))
        scored.sort(key=lambda item: (-item[0], item[1].id))

        k = self.config.top_k
        selected = [item for item in scored if item[0] > self.config.min_relevance][:k]
        if len(selected) < k:
            logger.debug(
                f"Only {len(selected)} case(s) above relevance floor "
                f"{self.config.min_relevance}; relaxing floor to fill top {k}"
            )
            selected = scored[:k]

        return [
            RankedCase(case=case, relevance_score=value, rank=position, matched_terms=matched)
            for position, (value, case, matched) in enumerate(selected, start=1)
        ]


def rank_cases(
    query: RetrievalQuery,
    registry: CaseRegistry,
    config: Optional[RetrievalConfig] = None,
) -> List[RankedCase]:
    """Functional shortcut for SimilarityRetriever(config).rank(query, registry)."""
    return SimilarityRetriever(config).rank(query, registry)


def build_query_text(symptoms: str, anatomy: Optional[str]) -> str:
    """
    Retrieval query string for a patient.

    Anatomy context is prefixed as a bracketed tag; with no anatomy and no
    symptoms the generic visual-anomaly phrase is used.
    """
    symptoms = symptoms or ""
    if anatomy:
        return f"{format_anatomy_tag(anatomy)}{symptoms}"
    if not symptoms.strip():
        return DEFAULT_VISUAL_QUERY
    return symptoms


def summarize_ranking(cases: Sequence[RankedCase]) -> str:
    return ", ".join(f"{c.case.id}={c.relevance_score}" for c in cases)

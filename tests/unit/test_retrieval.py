"""
Unit Tests for Similarity Retrieval

Tests for query parsing, scoring, ordering, cardinality and determinism.
"""
import pytest

from oncovector.core.registry import CaseRegistry
from oncovector.core.retrieval import (
    DEFAULT_VISUAL_QUERY,
    RetrievalConfig,
    RetrievalQuery,
    SimilarityRetriever,
    build_query_text,
    rank_cases,
    tokenize,
)
from oncovector.utils import EmptyRegistryError


def _case(case_id, diagnosis, tags, findings="", title="Case"):
    return {
        "id": case_id,
        "title": title,
        "age": 50,
        "gender": "Female",
        "symptom_tags": tags,
        "diagnosis": diagnosis,
        "visual_findings": findings,
        "source_name": "Test",
    }


class TestQueryText:

    def test_tokenize(self):
        assert tokenize("The patient has Irregular moles, and bleeding!") == {"irregular", "mole", "bleeding"}

    def test_build_with_anatomy(self):
        assert build_query_text("", "Lung") == "[PATIENT IMAGING ANATOMY: Lung] "
        assert build_query_text("cough", "Lung") == "[PATIENT IMAGING ANATOMY: Lung] cough"

    def test_build_symptoms_only(self):
        assert build_query_text("persistent cough", None) == "persistent cough"

    def test_build_default_phrase(self):
        assert build_query_text("   ", "") == DEFAULT_VISUAL_QUERY

    def test_from_text_parses_anatomy_tag(self):
        query = RetrievalQuery.from_text("[PATIENT IMAGING ANATOMY: Skin] bleeding mole")
        assert query.anatomy == "Skin"
        assert query.free_text == "bleeding mole"
        assert query.terms == {"bleeding", "mole"}
        assert "cutaneous" in query.anatomy_terms

    def test_from_text_without_tag(self):
        query = RetrievalQuery.from_text("headache")
        assert query.anatomy is None
        assert query.anatomy_terms == set()


class TestRetrievalConfig:

    def test_invalid_top_k(self):
        with pytest.raises(ValueError):
            RetrievalConfig(top_k=0)

    def test_invalid_floor(self):
        with pytest.raises(ValueError):
            RetrievalConfig(min_relevance=120.0)


class TestSimilarityRetriever:

    def test_melanoma_ranks_first_for_irregular_mole(self, registry):
        ranked = SimilarityRetriever().rank(RetrievalQuery(text="irregular mole"), registry)

        top = ranked[0]
        assert top.diagnosis == "Melanoma"
        assert top.relevance_score > 70
        assert "irregular" in top.matched_terms
        assert "mole" in top.matched_terms

    def test_lung_anatomy_prefers_lung_cases(self, registry):
        ranked = rank_cases(RetrievalQuery.from_text(build_query_text("", "Lung")), registry)

        top = ranked[0]
        assert any("lung" in tag for tag in top.symptom_tags) or "Lung" in top.diagnosis
        assert top.relevance_score > 0

    def test_ordering_and_bounds(self, registry):
        ranked = SimilarityRetriever().rank(RetrievalQuery(text="weight loss and persistent cough"), registry)

        assert len(ranked) <= 5
        assert [c.rank for c in ranked] == list(range(1, len(ranked) + 1))
        for ranked_case in ranked:
            assert 0.0 <= ranked_case.relevance_score <= 100.0
        for earlier, later in zip(ranked, ranked[1:]):
            assert earlier.relevance_score >= later.relevance_score
            if earlier.relevance_score == later.relevance_score:
                assert earlier.case.id < later.case.id

    def test_ties_broken_by_id(self):
        registry = CaseRegistry.from_dicts([
            _case("C-003", "Alpha", ["cough"]),
            _case("C-001", "Alpha", ["cough"]),
            _case("C-002", "Alpha", ["cough"]),
        ])
        ranked = rank_cases(RetrievalQuery(text="cough"), registry)
        assert [c.case.id for c in ranked] == ["C-001", "C-002", "C-003"]

    def test_deterministic(self, registry):
        retriever = SimilarityRetriever()
        query = RetrievalQuery.from_text("[PATIENT IMAGING ANATOMY: Skin] bleeding lesion")

        first = retriever.rank(query, registry)
        second = retriever.rank(query, registry)

        assert first == second

    def test_top_k_configurable(self, registry):
        ranked = SimilarityRetriever(RetrievalConfig(top_k=2)).rank(RetrievalQuery(text="mole"), registry)
        assert len(ranked) == 2

    def test_floor_relaxed_when_nothing_matches(self, registry):
        ranked = SimilarityRetriever().rank(RetrievalQuery(text="zzzz qqqq"), registry)

        assert len(ranked) == 5
        assert all(c.relevance_score == 0.0 for c in ranked)
        assert [c.case.id for c in ranked] == registry.ids()[:5]

    def test_small_registry_returns_all(self):
        registry = CaseRegistry.from_dicts([_case("C-1", "Alpha", ["cough"]), _case("C-2", "Beta", ["rash"])])
        assert len(rank_cases(RetrievalQuery(text="nothing relevant"), registry)) == 2

    def test_empty_registry_raises(self):
        with pytest.raises(EmptyRegistryError):
            SimilarityRetriever().rank(RetrievalQuery(text="cough"), CaseRegistry([]))

    def test_score_clamped(self):
        registry = CaseRegistry.from_dicts([
            _case("C-1", "Lung Nodule", ["lung nodule", "nodule", "lung"], findings="lung nodule", title="Lung"),
        ])
        query = RetrievalQuery.from_text("[PATIENT IMAGING ANATOMY: Lung] lung nodule")
        score, _ = SimilarityRetriever().score(query, registry.get("C-1"))
        assert score == 100.0

    def test_ranked_case_exposes_record_fields(self, registry):
        ranked = rank_cases(RetrievalQuery(text="irregular mole"), registry)
        assert ranked[0].id == ranked[0].case.id
        assert ranked[0].to_dict()["relevance_score"] == ranked[0].relevance_score

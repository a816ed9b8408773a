"""
Similarity Retrieval Module

Deterministic ranking of reference cases against a patient query.
Scores are reproducible; any display-only randomness lives elsewhere.
"""
from .similarity import (
    SimilarityRetriever,
    RetrievalConfig,
    RetrievalQuery,
    RankedCase,
    rank_cases,
    build_query_text,
    tokenize,
    DEFAULT_VISUAL_QUERY,
)

__all__ = [
    "SimilarityRetriever",
    "RetrievalConfig",
    "RetrievalQuery",
    "RankedCase",
    "rank_cases",
    "build_query_text",
    "tokenize",
    "DEFAULT_VISUAL_QUERY",
]

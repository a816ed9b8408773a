"""
Case Registry Module

Immutable snapshot of verified reference cases that retrieval ranks against.
"""
from .cases import CaseRecord, CaseRegistry, Gender, load_registry

__all__ = [
    "CaseRecord",
    "CaseRegistry",
    "Gender",
    "load_registry",
]

"""
Case Registry — reference case records used for similarity retrieval.

Case sources (in priority order):
  1. A JSON file of case objects (settings.registry_path)
  2. reference_cases.py — built-in verified demo cases (always available)

A registry is an immutable snapshot: records are frozen and the registry
exposes no mutators, so it can be shared read-only for the process lifetime.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple

from oncovector.utils import get_logger, RegistryLoadError

logger = get_logger(__name__)


class Gender(str, Enum):
    FEMALE = "Female"
    MALE = "Male"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: Any) -> "Gender":
        """Case-insensitive lookup; accepts members, values and names."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if text in (member.value.lower(), member.name.lower()):
                return member
        raise ValueError(f"Unknown gender: {value!r}")


@dataclass(frozen=True)
class CaseRecord:
    """One verified reference case from a university/hospital registry."""
    id: str
    title: str
    age: int
    gender: Gender
    symptom_tags: FrozenSet[str]
    diagnosis: str
    outcome_summary: str
    visual_findings: str
    source_name: str
    source_url: Optional[str] = None
    summary: str = ""
    verified_by: str = ""

    # Keys accepted by from_dict, first match wins. The camelCase spellings
    # keep legacy registry exports loadable.
    _KEY_ALIASES = {
        "symptom_tags": ("symptom_tags", "symptoms"),
        "outcome_summary": ("outcome_summary", "outcome"),
        "visual_findings": ("visual_findings", "visualFindings"),
        "source_name": ("source_name", "databaseSource"),
        "source_url": ("source_url", "sourceUrl"),
        "verified_by": ("verified_by", "verifiedBy"),
    }
    _REQUIRED = ("id", "title", "age", "gender", "diagnosis")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CaseRecord":
        missing = [key for key in cls._REQUIRED if data.get(key) in (None, "")]
        if missing:
            raise RegistryLoadError(
                f"Case record missing required fields: {', '.join(missing)}",
                details={"case_id": data.get("id"), "missing": missing},
            )

        def pick(name: str, default: Any = None) -> Any:
            for key in cls._KEY_ALIASES.get(name, (name,)):
                if key in data:
                    return data[key]
            return default

        try:
            return cls(
                id=str(data["id"]),
                title=str(data["title"]),
                age=int(data["age"]),
                gender=Gender.parse(data["gender"]),
                symptom_tags=frozenset(str(t).strip().lower() for t in pick("symptom_tags", ()) if str(t).strip()),
                diagnosis=str(data["diagnosis"]),
                outcome_summary=str(pick("outcome_summary", "")),
                visual_findings=str(pick("visual_findings", "")),
                source_name=str(pick("source_name", "")),
                source_url=pick("source_url"),
                summary=str(data.get("summary", "")),
                verified_by=str(pick("verified_by", "")),
            )
        except (TypeError, ValueError) as e:
            raise RegistryLoadError(
                f"Invalid case record {data.get('id')!r}: {e}",
                details={"case_id": data.get("id")},
            ) from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "age": self.age,
            "gender": self.gender.value,
            "symptom_tags": sorted(self.symptom_tags),
            "diagnosis": self.diagnosis,
            "outcome_summary": self.outcome_summary,
            "visual_findings": self.visual_findings,
            "source_name": self.source_name,
            "source_url": self.source_url,
            "summary": self.summary,
            "verified_by": self.verified_by,
        }


class CaseRegistry:
    """Read-only, id-indexed collection of CaseRecords."""

    def __init__(self, records: Iterable[CaseRecord], source: str = "memory"):
        self._records: Tuple[CaseRecord, ...] = tuple(records)
        self.source = source
        self._by_id: Dict[str, CaseRecord] = {}
        for record in self._records:
            if record.id in self._by_id:
                raise RegistryLoadError(
                    f"Duplicate case id in registry: {record.id}",
                    source=source,
                    details={"case_id": record.id},
                )
            self._by_id[record.id] = record

    @classmethod
    def from_dicts(cls, rows: Iterable[Dict[str, Any]], source: str = "memory") -> "CaseRegistry":
        return cls((CaseRecord.from_dict(row) for row in rows), source=source)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[CaseRecord]:
        return iter(self._records)

    def __contains__(self, case_id: object) -> bool:
        return case_id in self._by_id

    @property
    def is_empty(self) -> bool:
        return not self._records

    def get(self, case_id: str) -> Optional[CaseRecord]:
        return self._by_id.get(case_id)

    def ids(self) -> List[str]:
        return sorted(self._by_id)

    def filter_by_diagnosis(self, text: str) -> List[CaseRecord]:
        """Case-insensitive substring match on the diagnosis."""
        needle = text.strip().lower()
        return [r for r in self._records if needle in r.diagnosis.lower()]


def load_registry(path: Optional[Path] = None) -> CaseRegistry:
    """
    Load the case registry.

    Uses the JSON file at `path` when given and present, otherwise the
    built-in reference cases.

    Raises:
        RegistryLoadError: the file is unreadable, not a JSON list, or
            contains an invalid or duplicate record.
    """
    if path is not None:
        path = Path(path)
        if path.exists():
            try:
                with open(path, encoding="utf-8") as f:
                    rows = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise RegistryLoadError(f"Could not read case registry: {e}", source=str(path)) from e
            if not isinstance(rows, list):
                raise RegistryLoadError("Case registry file must contain a JSON list", source=str(path))
            registry = CaseRegistry.from_dicts(rows, source=str(path))
            logger.info(f"Loaded {len(registry)} reference cases from {path}")
            return registry
        logger.warning(f"Registry file {path} not found - falling back to built-in reference cases")

    from .reference_cases import REFERENCE_CASES
    registry = CaseRegistry.from_dicts(REFERENCE_CASES, source="builtin")
    logger.info(f"Loaded {len(registry)} built-in reference cases")
    return registry

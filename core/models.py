from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

# Пороги уверенности (0..1)
FUZZY_FLOOR = 0.6       # ниже или равно - "unknown"
HIGH_CONFIDENCE = 0.8   # выше - уверенное совпадение

METHOD_EXACT = "exact"
METHOD_FUZZY = "fuzzy"
METHOD_UNKNOWN = "unknown"

TIER_HIGH = "high"
TIER_MEDIUM = "medium"
TIER_NONE = "none"


@dataclass(frozen=True)
class MatchPolicy:
    fuzzy_floor: float = FUZZY_FLOOR
    high_confidence: float = HIGH_CONFIDENCE

    def tier(self, confidence: float) -> str:
        if confidence > self.high_confidence:
            return TIER_HIGH
        if confidence > self.fuzzy_floor:
            return TIER_MEDIUM
        return TIER_NONE


DEFAULT_POLICY = MatchPolicy()


@dataclass(frozen=True)
class RosterEntry:
    # Запись мастер-списка; сравнение идёт только по name
    name: str
    group: str = ""
    student_id: str = ""

    @classmethod
    def coerce(cls, value: Any) -> "RosterEntry":
        if isinstance(value, RosterEntry):
            return value
        if isinstance(value, dict):
            name = value.get("name", value.get("studentName", value.get("fio", "")))
            return cls(
                name=str(name or "").strip(),
                group=str(value.get("group", "") or "").strip(),
                student_id=str(value.get("id", value.get("student_id", "")) or "").strip(),
            )
        return cls(name="" if value is None else str(value))


@dataclass(frozen=True)
class IndexEntry:
    entry: RosterEntry
    position: int


@dataclass(frozen=True)
class MatchResult:
    input_name: str
    matched_entry: Optional[RosterEntry]
    confidence: float
    method: str
    policy: MatchPolicy = field(default=DEFAULT_POLICY, repr=False, compare=False)

    @property
    def matched_name(self) -> Optional[str]:
        return self.matched_entry.name if self.matched_entry is not None else None

    @property
    def tier(self) -> str:
        if self.matched_entry is None:
            return TIER_NONE
        if self.method == METHOD_EXACT:
            return TIER_HIGH
        return self.policy.tier(self.confidence)

    @property
    def is_present(self) -> bool:
        return self.tier != TIER_NONE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "input": self.input_name,
            "match": self.matched_name,
            "confidence": round(float(self.confidence), 4),
            "method": self.method,
            "tier": self.tier,
        }


@dataclass(frozen=True)
class ReconciliationResult:
    present: Tuple[str, ...]
    absentees: Tuple[str, ...]
    unknowns: Tuple[str, ...]
    total_processed: int
    match_details: Tuple[MatchResult, ...]
    policy: MatchPolicy = field(default=DEFAULT_POLICY, repr=False, compare=False)

    @property
    def accuracy(self) -> int:
        """
        Доля уверенных совпадений (confidence > high_confidence), в процентах.
        Округление half-up; 0, если ничего не обработано.
        """
        if self.total_processed <= 0:
            return 0
        high = sum(1 for m in self.match_details if m.confidence > self.policy.high_confidence)
        return int(100 * high / self.total_processed + 0.5)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "present": list(self.present),
            "absentees": list(self.absentees),
            "unknowns": list(self.unknowns),
            "totalProcessed": self.total_processed,
            "accuracy": self.accuracy,
            "matchDetails": [m.to_dict() for m in self.match_details],
        }

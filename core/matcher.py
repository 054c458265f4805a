from __future__ import annotations
from typing import Dict, Iterable, Any
from rapidfuzz.distance import Levenshtein
from .models import (
    DEFAULT_POLICY, IndexEntry, MatchPolicy, MatchResult, RosterEntry,
    METHOD_EXACT, METHOD_FUZZY, METHOD_UNKNOWN,
)
from .utils import normalize_name

# ключ нормализованного имени -> запись мастер-списка (+ позиция в списке)
MasterIndex = Dict[str, IndexEntry]


def build_index(roster: Iterable[Any]) -> MasterIndex:
    """
    Строит индекс мастер-списка для O(1) поиска точных совпадений.
    При совпадении ключей побеждает последняя запись (last-write-wins):
    ключ остаётся на месте первой вставки, значение заменяется.
    """
    index: MasterIndex = {}
    for pos, item in enumerate(roster):
        entry = RosterEntry.coerce(item)
        index[normalize_name(entry.name)] = IndexEntry(entry=entry, position=pos)
    return index


def similarity(a: str, b: str) -> float:
    # 1 - levenshtein / max(len); две пустые строки -> 1.0
    max_len = max(len(a), len(b)) or 1
    return 1.0 - Levenshtein.distance(a, b) / max_len


def find_best_match(input_name: Any, index: MasterIndex, policy: MatchPolicy = DEFAULT_POLICY) -> MatchResult:
    """
    Сначала точное совпадение по ключу, потом fuzzy по всему индексу.

    fuzzy: берём кандидата со строго большей уверенностью, чем текущий лучший,
    и только если она выше policy.fuzzy_floor. При равенстве остаётся первый
    (порядок обхода индекса).
    """
    raw = "" if input_name is None else str(input_name)
    key = normalize_name(raw)

    hit = index.get(key)
    if hit is not None:
        return MatchResult(raw, hit.entry, 1.0, METHOD_EXACT, policy)

    best_entry = None
    best_conf = 0.0
    for cand_key, cand in index.items():
        conf = similarity(key, cand_key)
        if conf > best_conf and conf > policy.fuzzy_floor:
            best_conf = conf
            best_entry = cand.entry

    if best_entry is None:
        return MatchResult(raw, None, 0.0, METHOD_UNKNOWN, policy)
    return MatchResult(raw, best_entry, best_conf, METHOD_FUZZY, policy)

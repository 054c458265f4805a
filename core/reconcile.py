from __future__ import annotations
import logging
from typing import Any, Iterable, List, Sequence, Tuple
from .matcher import build_index, find_best_match
from .models import DEFAULT_POLICY, MatchPolicy, MatchResult, ReconciliationResult, RosterEntry
from .utils import normalize_name

log = logging.getLogger(__name__)


def dedupe_uploaded_names(names: Iterable[Any]) -> List[str]:
    """
    Убирает пустые значения и повторы из загруженного списка.
    Сравнение по trim + lower, сохраняется первое написание и порядок первого появления.
    """
    seen = set()
    out: List[str] = []
    for x in names:
        if x is None:
            continue
        s = str(x).strip()
        if not s:
            continue
        k = s.lower()
        if k in seen:
            continue
        seen.add(k)
        out.append(s)
    return out


def _absentees(roster: Sequence[RosterEntry], present: Sequence[str]) -> Tuple[str, ...]:
    # дополнение по ключам, а не по позициям
    present_keys = {normalize_name(p) for p in present}
    return tuple(e.name for e in roster if normalize_name(e.name) not in present_keys)


def reconcile(
    uploaded_names: Iterable[Any],
    roster: Iterable[Any],
    policy: MatchPolicy = DEFAULT_POLICY,
) -> ReconciliationResult:
    """
    Сверяет загруженный список с мастер-списком.

    Возвращает:
      - present: имена из мастер-списка (повторы возможны, если несколько строк
        загрузки совпали с одной записью)
      - absentees: записи мастер-списка без совпадений
      - unknowns: строки загрузки без приемлемого совпадения
      - total_processed: число уникальных строк загрузки
      - match_details: результат сопоставления по каждой строке
    Входные данные не изменяются, ввода-вывода нет.
    """
    entries = tuple(RosterEntry.coerce(x) for x in roster)
    unique = dedupe_uploaded_names(uploaded_names)
    index = build_index(entries)

    details: Tuple[MatchResult, ...] = tuple(find_best_match(name, index, policy) for name in unique)

    present = tuple(m.matched_name for m in details if m.is_present)
    unknowns = tuple(m.input_name.strip() for m in details if not m.is_present)
    absentees = _absentees(entries, present)

    log.debug(
        "reconciled %d unique names against %d roster entries: present=%d absent=%d unknown=%d",
        len(unique), len(entries), len(present), len(absentees), len(unknowns),
    )

    return ReconciliationResult(
        present=present,
        absentees=absentees,
        unknowns=unknowns,
        total_processed=len(unique),
        match_details=details,
        policy=policy,
    )

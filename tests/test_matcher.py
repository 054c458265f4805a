from __future__ import annotations

import pytest

from core.matcher import build_index, find_best_match, similarity
from core.models import DEFAULT_POLICY, MatchPolicy, RosterEntry


def test_build_index_keys_by_normalized_name(roster_index) -> None:
    assert list(roster_index) == ["charan", "johnsmith", "janedoe"]
    assert roster_index["johnsmith"].entry == RosterEntry("John Smith")
    assert roster_index["johnsmith"].position == 1


def test_build_index_empty_roster() -> None:
    assert build_index([]) == {}


def test_build_index_last_write_wins_on_collision() -> None:
    index = build_index(["John Smith", "Jane Doe", "john  smith"])

    assert list(index) == ["johnsmith", "janedoe"]
    assert index["johnsmith"].entry.name == "john  smith"
    assert index["johnsmith"].position == 2


def test_build_index_accepts_dict_entries() -> None:
    index = build_index([{"name": "Charan", "group": "G4 VLSI", "id": "001"}])

    assert index["charan"].entry == RosterEntry("Charan", "G4 VLSI", "001")


def test_similarity_edges() -> None:
    assert similarity("", "") == 1.0
    assert similarity("abc", "") == 0.0
    assert similarity("charn", "charan") == pytest.approx(1 - 1 / 6)


def test_exact_match(roster_index) -> None:
    result = find_best_match("JOHN smith", roster_index)

    assert result.matched_name == "John Smith"
    assert result.confidence == 1.0
    assert result.method == "exact"
    assert result.tier == "high"
    assert result.input_name == "JOHN smith"


def test_exact_match_wins_over_close_fuzzy_candidates() -> None:
    index = build_index(["Charana", "Charan", "Charn"])

    result = find_best_match("charan", index)

    assert result.method == "exact"
    assert result.matched_name == "Charan"
    assert result.confidence == 1.0


def test_fuzzy_match_one_deletion() -> None:
    result = find_best_match("charn", build_index(["Charan"]))

    assert result.method == "fuzzy"
    assert result.matched_name == "Charan"
    assert result.confidence == pytest.approx(0.8333, abs=1e-3)
    assert result.tier == "high"
    assert result.is_present


def test_fuzzy_match_medium_tier() -> None:
    result = find_best_match("charxy", build_index(["Charan"]))

    assert result.method == "fuzzy"
    assert result.confidence == pytest.approx(4 / 6)
    assert result.tier == "medium"
    assert result.is_present


def test_no_match_below_floor(roster_index) -> None:
    result = find_best_match("unknown person", roster_index)

    assert result.matched_entry is None
    assert result.matched_name is None
    assert result.confidence == 0.0
    assert result.method == "unknown"
    assert result.tier == "none"
    assert not result.is_present


def test_confidence_exactly_at_floor_is_rejected() -> None:
    index = build_index(["abcde"])

    assert find_best_match("abxde", index).confidence == pytest.approx(0.8)
    # 2 правки на 5 символов -> ровно 0.6, порог строгий
    assert find_best_match("axyde", index).method == "unknown"


def test_fuzzy_tie_keeps_first_candidate_in_roster_order() -> None:
    index = build_index(["Jon", "Jan"])

    result = find_best_match("jin", index)

    assert result.method == "fuzzy"
    assert result.matched_name == "Jon"


def test_fuzzy_prefers_strictly_better_later_candidate() -> None:
    index = build_index(["Jonathan", "Jonathon"])

    result = find_best_match("jonathon x", index)

    assert result.matched_name == "Jonathon"


def test_empty_index_returns_unknown() -> None:
    result = find_best_match("Anyone", {})

    assert result.method == "unknown"
    assert result.matched_entry is None


def test_empty_input_against_roster(roster_index) -> None:
    result = find_best_match("", roster_index)

    assert result.method == "unknown"


@pytest.mark.parametrize(
    ("confidence", "tier"),
    [(0.9, "high"), (0.7, "medium"), (0.5, "none"), (0.8, "medium"), (0.6, "none")],
)
def test_policy_tiers(confidence: float, tier: str) -> None:
    assert DEFAULT_POLICY.tier(confidence) == tier


def test_custom_policy_changes_classification() -> None:
    strict = MatchPolicy(fuzzy_floor=0.7, high_confidence=0.9)

    result = find_best_match("charxy", build_index(["Charan"]), strict)

    assert result.method == "unknown"

from __future__ import annotations

import pytest

from core.utils import normalize_name


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Charan", "charan"),
        ("  John   Smith ", "johnsmith"),
        ("Charan - G4 VLSI", "charang4vlsi"),
        ("charan g4vlsi", "charang4vlsi"),
        ("O'Brien, Mary-Jane", "obrienmaryjane"),
        ("José", "jos"),
        ("12:30 PM", "1230pm"),
        ("", ""),
        ("---", ""),
    ],
)
def test_normalize_name(raw: str, expected: str) -> None:
    assert normalize_name(raw) == expected


def test_normalize_name_handles_none() -> None:
    assert normalize_name(None) == ""


@pytest.mark.parametrize(
    "raw",
    ["Charan - G4 VLSI", "  MiXeD\tCase\nName ", "ÅÄÖ åäö", "İstanbul", "a_b.c", "", " x "],
)
def test_normalize_name_is_idempotent(raw: str) -> None:
    once = normalize_name(raw)

    assert normalize_name(once) == once
    assert all(ch.isascii() and (ch.islower() or ch.isdigit()) for ch in once)

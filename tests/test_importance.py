"""Tests for the importance ordering."""

from __future__ import annotations

import pytest

from app.domain.entities import Importance, parse_importance
from app.domain.exceptions import ValidationError


def test_levels_are_totally_ordered() -> None:
    assert Importance.LOW < Importance.MEDIUM < Importance.HIGH < Importance.URGENT
    assert Importance.URGENT > Importance.LOW
    assert Importance.MEDIUM <= Importance.MEDIUM
    assert Importance.HIGH >= Importance.MEDIUM


def test_order_follows_rank_not_alphabet() -> None:
    # alphabetically "high" < "low", which must not leak into comparisons
    assert Importance.LOW < Importance.HIGH
    assert sorted([Importance.URGENT, Importance.LOW, Importance.HIGH]) == [
        Importance.LOW,
        Importance.HIGH,
        Importance.URGENT,
    ]


@pytest.mark.parametrize("raw", ["low", "LOW", " Medium "])
def test_parse_accepts_known_names(raw: str) -> None:
    assert parse_importance(raw).value == raw.strip().lower()


@pytest.mark.parametrize("raw", ["critical", "", None])
def test_parse_rejects_unknown_values(raw) -> None:
    with pytest.raises(ValidationError):
        parse_importance(raw)


def test_plain_strings_compare_by_rank() -> None:
    assert not Importance.HIGH < "low"
    assert Importance.HIGH > "low"
    assert Importance.LOW < "high"
    assert Importance.MEDIUM >= "medium"
    assert "low" < Importance.HIGH
    assert "urgent" > Importance.HIGH


def test_comparing_with_unknown_string_raises() -> None:
    with pytest.raises(ValidationError):
        Importance.HIGH < "critical"

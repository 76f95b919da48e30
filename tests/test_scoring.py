# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for the shared signal-scoring framework."""

from __future__ import annotations

from enum import StrEnum

import pytest
from hypothesis import given
from hypothesis import strategies as st

from pageverdict.errors import RuleTableError
from pageverdict.scoring import (
    MAX_REASONS,
    Classifier,
    ScoringRule,
    fired_rules,
    is_set,
    score,
)
from pageverdict.signals import signal_record


class Shape(StrEnum):
    ROUND = "round"
    SQUARE = "square"
    TRIANGLE = "triangle"
    UNKNOWN = "unknown"


RULES = (
    ScoringRule("curved", Shape.ROUND, 40, "curved edges"),
    ScoringRule("corners", Shape.SQUARE, 20, "{value} corners", above=3),
    ScoringRule("corners", Shape.TRIANGLE, 30, "three corners", above=2, excludes=("fourth_corner",)),
    ScoringRule("equal_sides", Shape.SQUARE, 25, "equal sides", requires=("right_angles",)),
    ScoringRule("label", Shape.ROUND, 5, "labelled {value}"),
)

CATEGORIES = [Shape.ROUND, Shape.SQUARE, Shape.TRIANGLE]


def _score(**signals):
    return score(signal_record(**signals), RULES, CATEGORIES, unknown=Shape.UNKNOWN)


class TestIsSet:
    @pytest.mark.parametrize(
        "value,above,expected",
        [
            (True, 0, True),
            (False, 0, False),
            (0, 0, False),
            (1, 0, True),
            (5, 5, False),
            (6, 5, True),
            ("", 0, False),
            ("alice", 0, True),
            ((), 0, False),
            (("msg",), 0, True),
            (None, 0, False),
        ],
    )
    def test_truthiness(self, value, above, expected):
        assert is_set(value, above) is expected

    def test_bool_is_not_treated_as_count(self):
        # True == 1 would otherwise fail an above=1 threshold the wrong way
        assert is_set(True, above=5) is True


class TestRuleQualifiers:
    def test_above_threshold(self):
        rule = RULES[1]
        assert not rule.fires(signal_record(corners=3))
        assert rule.fires(signal_record(corners=4))

    def test_requires(self):
        rule = RULES[3]
        assert not rule.fires(signal_record(equal_sides=True))
        assert rule.fires(signal_record(equal_sides=True, right_angles=True))

    def test_excludes(self):
        rule = RULES[2]
        assert rule.fires(signal_record(corners=3))
        assert not rule.fires(signal_record(corners=3, fourth_corner=True))

    def test_reason_interpolates_value(self):
        assert RULES[1].describe(signal_record(corners=8)) == "8 corners"

    def test_fired_rules_declaration_order(self):
        fired = list(fired_rules(signal_record(label="x", curved=True), RULES))
        assert [r.reason for r in fired] == ["curved edges", "labelled {value}"]


class TestScore:
    def test_no_rules_fire_is_unknown(self):
        result = _score()
        assert result.category == Shape.UNKNOWN
        assert result.confidence == 0.0
        assert result.reasons == ()
        assert result.secondary is None

    def test_threshold_is_inclusive(self):
        rules = (ScoringRule("a", Shape.ROUND, 20, "a"),)
        result = score(signal_record(a=True), rules, CATEGORIES, unknown=Shape.UNKNOWN, unknown_threshold=20)
        assert result.category == Shape.UNKNOWN
        assert result.score == 20
        assert result.confidence == pytest.approx(0.2)

    def test_winner_and_confidence(self):
        result = _score(curved=True, label="disc")
        assert result.category == Shape.ROUND
        assert result.score == 45
        assert result.confidence == pytest.approx(0.45)
        assert result.reasons == ("curved edges", "labelled disc")

    def test_confidence_capped_at_one(self):
        rules = tuple(ScoringRule(f"s{i}", Shape.ROUND, 40, f"r{i}") for i in range(4))
        result = score(
            signal_record(s0=True, s1=True, s2=True, s3=True), rules, CATEGORIES, unknown=Shape.UNKNOWN
        )
        assert result.score == 160
        assert result.confidence == 1.0

    def test_tie_resolves_by_declaration_order(self):
        rules = (
            ScoringRule("t", Shape.TRIANGLE, 30, "t"),
            ScoringRule("s", Shape.SQUARE, 30, "s"),
        )
        result = score(signal_record(t=True, s=True), rules, CATEGORIES, unknown=Shape.UNKNOWN)
        # SQUARE is declared before TRIANGLE
        assert result.category == Shape.SQUARE

    def test_reasons_capped(self):
        rules = tuple(ScoringRule(f"s{i}", Shape.ROUND, 10, f"r{i}") for i in range(8))
        result = score(signal_record(**{f"s{i}": True for i in range(8)}), rules, CATEGORIES, unknown=Shape.UNKNOWN)
        assert result.reasons == tuple(f"r{i}" for i in range(MAX_REASONS))

    def test_scores_map_includes_every_category(self):
        result = _score(curved=True)
        assert result.scores == {Shape.ROUND: 40, Shape.SQUARE: 0, Shape.TRIANGLE: 0}


class TestSecondary:
    def _rules(self, top: int, second: int):
        return (
            ScoringRule("a", Shape.ROUND, top, "a"),
            ScoringRule("b", Shape.SQUARE, second, "b"),
        )

    def test_secondary_reported(self):
        result = score(signal_record(a=True, b=True), self._rules(60, 35), CATEGORIES, unknown=Shape.UNKNOWN)
        assert result.secondary == Shape.SQUARE

    def test_secondary_needs_more_than_thirty(self):
        result = score(signal_record(a=True, b=True), self._rules(40, 30), CATEGORIES, unknown=Shape.UNKNOWN)
        assert result.secondary is None

    def test_secondary_needs_more_than_half(self):
        result = score(signal_record(a=True, b=True), self._rules(80, 40), CATEGORIES, unknown=Shape.UNKNOWN)
        assert result.secondary is None


class TestClassifier:
    def test_rejects_undeclared_category(self):
        rules = (ScoringRule("a", "hexagon", 10, "a"),)
        with pytest.raises(RuleTableError, match="hexagon"):
            Classifier(Shape, rules, unknown=Shape.UNKNOWN, name="shapes")

    def test_rule_table_error_is_value_error(self):
        with pytest.raises(ValueError):
            Classifier(Shape, (ScoringRule("a", "hexagon", 10, "a"),), unknown=Shape.UNKNOWN)

    def test_unknown_not_a_competing_category(self):
        clf = Classifier(Shape, RULES, unknown=Shape.UNKNOWN)
        assert Shape.UNKNOWN not in clf.categories
        assert clf.categories == (Shape.ROUND, Shape.SQUARE, Shape.TRIANGLE)

    def test_classify_matches_score(self):
        clf = Classifier(Shape, RULES, unknown=Shape.UNKNOWN)
        signals = signal_record(corners=3, curved=False)
        assert clf.classify(signals) == score(signals, RULES, clf.categories, unknown=Shape.UNKNOWN)

    def test_repr(self):
        clf = Classifier(Shape, RULES, unknown=Shape.UNKNOWN, name="shapes")
        assert repr(clf) == "Classifier(name='shapes', categories=3, rules=5)"


_signal_values = st.fixed_dictionaries(
    {},
    optional={
        "curved": st.booleans(),
        "corners": st.integers(min_value=0, max_value=10),
        "fourth_corner": st.booleans(),
        "equal_sides": st.booleans(),
        "right_angles": st.booleans(),
        "label": st.text(max_size=5),
    },
)


class TestProperties:
    @given(_signal_values)
    def test_confidence_bounded(self, values):
        result = _score(**values)
        assert 0.0 <= result.confidence <= 1.0
        assert len(result.reasons) <= MAX_REASONS

    @given(_signal_values)
    def test_idempotent(self, values):
        assert _score(**values) == _score(**values)

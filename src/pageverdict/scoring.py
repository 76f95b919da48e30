# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Declarative signal scoring shared by every classifier.

A classifier is an explicit rule table plus an ordered category list:

  - each rule names a signal, a category, fixed points and a reason string
  - a rule fires when its signal is truthy (bool True, count above ``above``,
    non-empty detail) and its ``requires`` / ``excludes`` qualifiers hold
  - fired points accumulate per category; the highest total wins
  - ties resolve by category declaration order (first declared wins)
  - confidence = min(top / 100, 1)

The unknown threshold and the confidence denominator are calibration
constants.  Every downstream verdict depends on them; keep them fixed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from .errors import RuleTableError

logger = logging.getLogger(__name__)

SignalValue = bool | int | str | tuple[str, ...]
SignalRecord = Mapping[str, SignalValue]

CONFIDENCE_DENOMINATOR = 100
UNKNOWN_THRESHOLD = 20  # top score must be strictly above this
MAX_REASONS = 5
SECONDARY_MIN_SCORE = 30
SECONDARY_MIN_RATIO = 0.5


def is_set(value: SignalValue | None, above: int = 0) -> bool:
    """Truthiness of one signal value.

    Booleans are taken as-is, counts must exceed ``above``, detail values
    (strings, tuples) must be non-empty.  Missing signals are never set.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value > above
    return len(value) > 0


@dataclass(frozen=True, slots=True)
class ScoringRule:
    """One (signal → category, points, reason) entry of a rule table."""

    signal: str
    category: str
    points: int
    reason: str  # may reference the signal value as {value}
    above: int = 0
    requires: tuple[str, ...] = ()
    excludes: tuple[str, ...] = ()

    def fires(self, signals: SignalRecord) -> bool:
        if not is_set(signals.get(self.signal), self.above):
            return False
        if not all(is_set(signals.get(name)) for name in self.requires):
            return False
        return not any(is_set(signals.get(name)) for name in self.excludes)

    def describe(self, signals: SignalRecord) -> str:
        return self.reason.format(value=signals.get(self.signal))


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    """Winner, bounded confidence and the evidence trail of one scoring run."""

    category: str
    confidence: float  # 0.0–1.0
    score: int  # raw points of the top-scoring category
    reasons: tuple[str, ...]  # fired reasons, declaration order, max 5
    secondary: str | None = None
    scores: dict[str, int] = field(default_factory=dict)


def fired_rules(signals: SignalRecord, rules: Sequence[ScoringRule]) -> Iterator[ScoringRule]:
    """Yield the rules that fire on ``signals``, in declaration order."""
    for rule in rules:
        if rule.fires(signals):
            yield rule


def score(
    signals: SignalRecord,
    rules: Sequence[ScoringRule],
    categories: Sequence[str],
    *,
    unknown: str,
    unknown_threshold: int = UNKNOWN_THRESHOLD,
) -> ClassificationResult:
    """Score ``signals`` against ``rules`` and pick a winner among ``categories``.

    Args:
        signals: flat signal record for one snapshot
        rules: ordered rule table
        categories: competing categories in declaration (tie-break) order
        unknown: label reported when the top score is ≤ ``unknown_threshold``
        unknown_threshold: classifier-specific floor for a real answer

    Returns:
        ClassificationResult; pure function of its arguments.
    """
    totals: dict[str, int] = {c: 0 for c in categories}
    reasons: list[str] = []

    for rule in fired_rules(signals, rules):
        totals[rule.category] += rule.points
        if len(reasons) < MAX_REASONS:
            reasons.append(rule.describe(signals))

    # sorted() is stable, so equal totals keep declaration order
    ranked = sorted(categories, key=lambda c: totals[c], reverse=True)
    if not ranked:
        return ClassificationResult(category=unknown, confidence=0.0, score=0, reasons=tuple(reasons))

    top, top_score = ranked[0], totals[ranked[0]]
    runner_up = ranked[1] if len(ranked) > 1 else None
    runner_up_score = totals[runner_up] if runner_up is not None else 0

    confidence = max(0.0, min(top_score / CONFIDENCE_DENOMINATOR, 1.0))
    has_secondary = runner_up_score > SECONDARY_MIN_SCORE and runner_up_score > top_score * SECONDARY_MIN_RATIO

    return ClassificationResult(
        category=top if top_score > unknown_threshold else unknown,
        confidence=confidence,
        score=top_score,
        reasons=tuple(reasons),
        secondary=runner_up if has_secondary else None,
        scores=totals,
    )


class Classifier:
    """A scorer bound to one explicit rule table.

    Built directly by callers from a category enum and a rule tuple; there is
    no registry.  Rules naming undeclared categories fail at construction.
    """

    def __init__(
        self,
        categories: type[StrEnum] | Sequence[str],
        rules: Sequence[ScoringRule],
        *,
        unknown: str,
        unknown_threshold: int = UNKNOWN_THRESHOLD,
        name: str = "classifier",
    ) -> None:
        ordered = [c for c in categories if c != unknown]
        declared = set(ordered)
        stray = sorted({r.category for r in rules} - declared)
        if stray:
            raise RuleTableError(f"{name}: rules reference undeclared categories {stray}")
        self.name = name
        self.categories: tuple[str, ...] = tuple(ordered)
        self.rules: tuple[ScoringRule, ...] = tuple(rules)
        self.unknown = unknown
        self.unknown_threshold = unknown_threshold

    def classify(self, signals: SignalRecord) -> ClassificationResult:
        result = score(
            signals,
            self.rules,
            self.categories,
            unknown=self.unknown,
            unknown_threshold=self.unknown_threshold,
        )
        logger.debug(
            "%s: %s (score=%d, confidence=%.2f, secondary=%s)",
            self.name,
            result.category,
            result.score,
            result.confidence,
            result.secondary,
        )
        return result

    def __repr__(self) -> str:
        return f"Classifier(name={self.name!r}, categories={len(self.categories)}, rules={len(self.rules)})"

# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Verdict aggregation: four issue streams → one PASS / ISSUES / FAIL.

Issue streams, in the order they are merged:

  1. element-audit issues (accessibility for missing ARIA labels)
  2. interactivity issues, minus any whose description duplicates an audit
     message, each with a fix suggestion
  3. semantic issues, severity mapped critical→error, major→warning,
     minor→info
  4. console errors, minus favicon/manifest noise

The verdict counts severities only: three errors fail a page, one error or
five warnings flag it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import StrEnum

from .logging_config import scan_context
from .scoring import SignalRecord
from .semantic import SemanticIssue, SemanticResult, SemanticSeverity, analyze_semantics

logger = logging.getLogger(__name__)

FAIL_ERROR_COUNT = 3
ISSUES_WARNING_COUNT = 5
CONSOLE_MESSAGE_CHARS = 200
CONSOLE_NOISE: tuple[str, ...] = ("favicon", "manifest")


class IssueSeverity(StrEnum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class IssueCategory(StrEnum):
    INTERACTIVITY = "interactivity"
    ACCESSIBILITY = "accessibility"
    SEMANTIC = "semantic"
    CONSOLE = "console"
    STRUCTURE = "structure"


class ScanVerdict(StrEnum):
    PASS = "PASS"
    ISSUES = "ISSUES"
    FAIL = "FAIL"


@dataclass(frozen=True, slots=True)
class AuditIssue:
    """Element-audit finding, as reported by the element auditor."""

    type: str
    severity: IssueSeverity
    message: str
    element: str | None = None


@dataclass(frozen=True, slots=True)
class InteractivityIssue:
    """Interactivity finding (missing handler, placeholder link, ...)."""

    type: str
    severity: IssueSeverity
    description: str
    element: str | None = None


@dataclass(frozen=True, slots=True)
class ScanIssue:
    category: IssueCategory
    severity: IssueSeverity
    description: str
    element: str | None = None
    fix: str | None = None


@dataclass(frozen=True, slots=True)
class ScanResult:
    url: str
    verdict: ScanVerdict
    summary: str
    issues: tuple[ScanIssue, ...]
    semantic: SemanticResult
    console_errors: tuple[str, ...] = ()


_FIX_SUGGESTIONS: dict[str, str] = {
    "NO_HANDLER": "Add an onClick handler or remove the interactive appearance",
    "PLACEHOLDER_LINK": "Add a real href or an onClick handler",
    "MISSING_LABEL": "Add aria-label or visible text content",
    "FORM_NO_SUBMIT": "Add a submit handler or action attribute to the form",
    "ORPHAN_SUBMIT": "Ensure the submit button is inside a form",
    "SMALL_TOUCH_TARGET": "Increase element size to at least 44x44px for touch targets",
}

_SEMANTIC_SEVERITY: dict[SemanticSeverity, IssueSeverity] = {
    SemanticSeverity.CRITICAL: IssueSeverity.ERROR,
    SemanticSeverity.MAJOR: IssueSeverity.WARNING,
    SemanticSeverity.MINOR: IssueSeverity.INFO,
}


def fix_suggestion(issue_type: str) -> str | None:
    return _FIX_SUGGESTIONS.get(issue_type)


def _is_console_noise(message: str) -> bool:
    return any(term in message for term in CONSOLE_NOISE)


def aggregate_issues(
    audit_issues: Iterable[AuditIssue],
    interactivity_issues: Iterable[InteractivityIssue],
    semantic_issues: Iterable[SemanticIssue],
    console_errors: Iterable[str],
) -> list[ScanIssue]:
    """Merge the four issue streams in a fixed order."""
    audit = list(audit_issues)
    issues: list[ScanIssue] = [
        ScanIssue(
            category=IssueCategory.ACCESSIBILITY if a.type == "MISSING_ARIA_LABEL" else IssueCategory.INTERACTIVITY,
            severity=IssueSeverity(a.severity),
            description=a.message,
            element=a.element,
        )
        for a in audit
    ]

    audit_messages = {a.message for a in audit}
    for issue in interactivity_issues:
        if issue.description in audit_messages:
            continue
        issues.append(
            ScanIssue(
                category=IssueCategory.ACCESSIBILITY if issue.type == "MISSING_LABEL" else IssueCategory.INTERACTIVITY,
                severity=IssueSeverity(issue.severity),
                description=issue.description,
                element=issue.element,
                fix=fix_suggestion(issue.type),
            )
        )

    for sem in semantic_issues:
        issues.append(
            ScanIssue(
                category=IssueCategory.SEMANTIC,
                severity=_SEMANTIC_SEVERITY[SemanticSeverity(sem.severity)],
                description=sem.problem,
                element=sem.element,
                fix=sem.fix or None,
            )
        )

    for message in console_errors:
        if _is_console_noise(message):
            continue
        issues.append(
            ScanIssue(
                category=IssueCategory.CONSOLE,
                severity=IssueSeverity.ERROR,
                description=f"Console error: {message[:CONSOLE_MESSAGE_CHARS]}",
            )
        )

    return issues


def _severity_counts(issues: Sequence[ScanIssue]) -> tuple[int, int]:
    errors = sum(1 for i in issues if i.severity == IssueSeverity.ERROR)
    warnings = sum(1 for i in issues if i.severity == IssueSeverity.WARNING)
    return errors, warnings


def determine_verdict(issues: Sequence[ScanIssue]) -> ScanVerdict:
    errors, warnings = _severity_counts(issues)
    if errors >= FAIL_ERROR_COUNT:
        return ScanVerdict.FAIL
    if errors > 0 or warnings >= ISSUES_WARNING_COUNT:
        return ScanVerdict.ISSUES
    return ScanVerdict.PASS


def scan_summary(
    semantic: SemanticResult,
    issues: Sequence[ScanIssue],
    *,
    total_elements: int = 0,
    interactive_elements: int = 0,
    console_errors: Sequence[str] = (),
) -> str:
    """One-line scan summary, e.g. ``listing page, 120 elements (30 interactive), 2 errors``."""
    parts = [
        f"{semantic.page_intent.category} page",
        f"{total_elements} elements ({interactive_elements} interactive)",
    ]

    state = semantic.state
    if state.auth.authenticated:
        parts.append("authenticated")
    if state.loading.loading:
        parts.append(f"loading ({state.loading.type})")
    if state.errors.has_errors:
        parts.append(f"{len(state.errors.errors)} page errors")
    if console_errors:
        parts.append(f"{len(console_errors)} console errors")

    errors, warnings = _severity_counts(issues)
    counts = []
    if errors:
        counts.append(f"{errors} errors")
    if warnings:
        counts.append(f"{warnings} warnings")
    if counts:
        parts.append(", ".join(counts))

    return ", ".join(parts)


def scan_page(
    signals: SignalRecord,
    *,
    url: str = "",
    title: str = "",
    audit_issues: Iterable[AuditIssue] = (),
    interactivity_issues: Iterable[InteractivityIssue] = (),
    console_errors: Iterable[str] = (),
) -> ScanResult:
    """Semantic analysis plus aggregation for one page."""
    with scan_context(url=url):
        semantic = analyze_semantics(signals, url=url, title=title)
        console = tuple(console_errors)
        issues = aggregate_issues(audit_issues, interactivity_issues, semantic.issues, console)
        verdict = determine_verdict(issues)
        logger.info("scan verdict=%s issues=%d", verdict, len(issues))

    def _count(name: str) -> int:
        value = signals.get(name, 0)
        return value if isinstance(value, int) and not isinstance(value, bool) else 0

    summary = scan_summary(
        semantic,
        issues,
        total_elements=_count("total_elements"),
        interactive_elements=_count("interactive_elements"),
        console_errors=console,
    )

    return ScanResult(
        url=url,
        verdict=verdict,
        summary=summary,
        issues=tuple(issues),
        semantic=semantic,
        console_errors=console,
    )

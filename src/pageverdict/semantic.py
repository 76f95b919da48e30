# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Semantic output: intent + state → issues, verdict, actions, recovery.

Builds the agent-facing view of one page from a single signal record:

  - semantic issues synthesized from page state and intent (a dashboard
    without authentication is a major issue, not just a flag)
  - a semantic verdict where ERROR (critical issue) beats LOADING, and
    LOADING beats issue counting
  - the actions the page offers, and a recovery hint for failed pages
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum

from .page_intent import PageIntent, classify_intent
from .page_state import ErrorType, LoadingType, PageState, detect_page_state
from .scoring import ClassificationResult, SignalRecord, is_set

logger = logging.getLogger(__name__)

SLOW_LOADING_INDICATORS = 3
LOW_CONFIDENCE = 0.5


class SemanticSeverity(StrEnum):
    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"


class SemanticVerdict(StrEnum):
    PASS = "PASS"
    ISSUES = "ISSUES"
    FAIL = "FAIL"
    LOADING = "LOADING"
    ERROR = "ERROR"


@dataclass(frozen=True, slots=True)
class SemanticIssue:
    severity: SemanticSeverity
    type: str
    problem: str
    fix: str
    element: str | None = None


@dataclass(frozen=True, slots=True)
class AvailableAction:
    action: str  # login, search, submit, create, filter, sort, paginate, back
    description: str
    selector: str | None = None


@dataclass(frozen=True, slots=True)
class RecoveryHint:
    suggestion: str
    alternatives: tuple[str, ...] = ()
    wait_for: str | None = None


@dataclass(frozen=True, slots=True)
class SemanticResult:
    verdict: SemanticVerdict
    confidence: float
    page_intent: ClassificationResult
    state: PageState
    available_actions: tuple[AvailableAction, ...]
    issues: tuple[SemanticIssue, ...]
    summary: str
    recovery: RecoveryHint | None = None
    url: str = ""
    title: str = ""


# ---------------------------------------------------------------------------
# Issues
# ---------------------------------------------------------------------------

_ERROR_FIXES: dict[ErrorType, str] = {
    ErrorType.VALIDATION: "Fix the highlighted form fields",
    ErrorType.API: "Retry the request or check API status",
    ErrorType.PERMISSION: "Login with appropriate permissions",
    ErrorType.NOT_FOUND: "Check the URL or navigate to a valid page",
    ErrorType.SERVER: "Wait and retry, or contact support",
    ErrorType.NETWORK: "Check internet connection",
    ErrorType.UNKNOWN: "Investigate the error message",
}

_CRITICAL_ERROR_TYPES = frozenset({ErrorType.SERVER, ErrorType.PERMISSION})


def collect_semantic_issues(state: PageState, intent: ClassificationResult) -> list[SemanticIssue]:
    issues: list[SemanticIssue] = []

    for error in state.errors.errors:
        issues.append(
            SemanticIssue(
                severity=SemanticSeverity.CRITICAL if error.type in _CRITICAL_ERROR_TYPES else SemanticSeverity.MAJOR,
                type=error.type,
                problem=error.message,
                fix=_ERROR_FIXES.get(error.type, "Investigate the issue"),
                element=error.element,
            )
        )

    if state.loading.loading and state.loading.elements > SLOW_LOADING_INDICATORS:
        issues.append(
            SemanticIssue(
                severity=SemanticSeverity.MINOR,
                type="slow-loading",
                problem=f"Page has {state.loading.elements} loading indicators",
                fix="Wait for content to load or check network",
            )
        )

    if state.auth.authenticated is False and intent.category == PageIntent.DASHBOARD:
        issues.append(
            SemanticIssue(
                severity=SemanticSeverity.MAJOR,
                type="auth-required",
                problem="Dashboard requires authentication",
                fix="Login first before accessing this page",
            )
        )

    return issues


def determine_semantic_verdict(state: PageState, issues: Sequence[SemanticIssue]) -> SemanticVerdict:
    """Critical issues beat loading; loading beats error and issue counting."""
    if any(i.severity == SemanticSeverity.CRITICAL for i in issues):
        return SemanticVerdict.ERROR
    if state.loading.loading:
        return SemanticVerdict.LOADING
    if state.errors.has_errors:
        return SemanticVerdict.FAIL
    if any(i.severity == SemanticSeverity.MAJOR for i in issues):
        return SemanticVerdict.ISSUES
    return SemanticVerdict.PASS


# ---------------------------------------------------------------------------
# Actions & recovery
# ---------------------------------------------------------------------------


def detect_available_actions(signals: SignalRecord, intent: PageIntent | str) -> list[AvailableAction]:
    actions: list[AvailableAction] = []

    def _sel(name: str, default: str) -> str:
        value = signals.get(name)
        return value if isinstance(value, str) and value else default

    if intent == PageIntent.AUTH and is_set(signals.get("has_login_form")):
        actions.append(AvailableAction("login", "Submit login credentials", selector="form"))

    if is_set(signals.get("has_search")):
        actions.append(
            AvailableAction("search", "Search for content", selector=_sel("search_selector", 'input[type="search"]'))
        )

    if is_set(signals.get("has_submit")) and intent != PageIntent.AUTH:
        actions.append(
            AvailableAction("submit", "Submit form", selector=_sel("submit_selector", 'button[type="submit"]'))
        )

    if is_set(signals.get("has_add_control")):
        actions.append(AvailableAction("create", "Create new item", selector=_sel("add_selector", "button")))

    if intent == PageIntent.LISTING:
        if is_set(signals.get("has_filter_control")):
            actions.append(AvailableAction("filter", "Filter results"))
        if is_set(signals.get("has_sort_control")):
            actions.append(AvailableAction("sort", "Sort results"))
        if is_set(signals.get("has_pagination_control")):
            actions.append(AvailableAction("paginate", "Navigate to next/previous page"))

    if is_set(signals.get("has_back_control")):
        actions.append(AvailableAction("back", "Go back to previous page"))

    return actions


def recovery_hint(state: PageState) -> RecoveryHint:
    if state.auth.authenticated is False:
        return RecoveryHint(
            suggestion="Login to access this page",
            alternatives=("Run the login flow first", "Navigate to /login first"),
            wait_for='[class*="user"], [class*="avatar"]',
        )

    types = {e.type for e in state.errors.errors}
    if ErrorType.SERVER in types:
        return RecoveryHint(
            suggestion="Server error - wait and retry",
            alternatives=("Refresh the page", "Check server status"),
        )
    if ErrorType.NOT_FOUND in types:
        return RecoveryHint(
            suggestion="Page not found - check URL",
            alternatives=("Navigate to homepage", "Use search to find content"),
        )

    if state.loading.loading:
        marker = "skeleton" if state.loading.type == LoadingType.SKELETON else "loading"
        return RecoveryHint(
            suggestion="Wait for page to finish loading",
            wait_for=f':not([class*="{marker}"])',
        )

    return RecoveryHint(suggestion="Investigate the page state and retry")


# ---------------------------------------------------------------------------
# Summary & assembly
# ---------------------------------------------------------------------------


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count > 1 else ''}"


def semantic_summary(
    intent: ClassificationResult,
    state: PageState,
    verdict: SemanticVerdict,
    issue_count: int,
) -> str:
    parts = [f"{intent.category} page"]
    if intent.confidence < LOW_CONFIDENCE:
        parts.append("(low confidence)")

    if state.auth.authenticated is True:
        parts.append(f"authenticated as {state.auth.username}" if state.auth.username else "authenticated")
    elif state.auth.authenticated is False:
        parts.append("not authenticated")

    if state.loading.loading:
        parts.append(f"loading ({state.loading.type})")

    if verdict == SemanticVerdict.PASS:
        parts.append("ready for interaction")
    elif verdict == SemanticVerdict.ISSUES:
        parts.append(f"{_plural(issue_count, 'issue')} detected")
    elif verdict in (SemanticVerdict.ERROR, SemanticVerdict.FAIL):
        parts.append(_plural(issue_count, "error"))

    return ", ".join(parts)


def analyze_semantics(signals: SignalRecord, *, url: str = "", title: str = "") -> SemanticResult:
    """Full semantic view of one page from its signal record."""
    intent = classify_intent(signals)
    state = detect_page_state(signals)
    issues = collect_semantic_issues(state, intent)
    verdict = determine_semantic_verdict(state, issues)
    recovery = recovery_hint(state) if verdict in (SemanticVerdict.FAIL, SemanticVerdict.ERROR) else None

    logger.debug("semantic verdict=%s intent=%s issues=%d", verdict, intent.category, len(issues))

    return SemanticResult(
        verdict=verdict,
        confidence=intent.confidence,
        page_intent=intent,
        state=state,
        available_actions=tuple(detect_available_actions(signals, intent.category)),
        issues=tuple(issues),
        summary=semantic_summary(intent, state, verdict, len(issues)),
        recovery=recovery,
        url=url,
        title=title,
    )


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def format_semantic_text(result: SemanticResult) -> str:
    """Concise multi-line text for agent prompts."""
    lines = [
        f"Verdict: {result.verdict}",
        f"Page: {result.page_intent.category} ({round(result.confidence * 100)}% confidence)",
        f"Summary: {result.summary}",
    ]
    if result.state.auth.authenticated is not None:
        lines.append(f"Auth: {'logged in' if result.state.auth.authenticated else 'logged out'}")
    if result.available_actions:
        lines.append(f"Actions: {', '.join(a.action for a in result.available_actions)}")
    if result.issues:
        lines.append(f"Issues: {'; '.join(i.problem for i in result.issues)}")
    if result.recovery:
        lines.append(f"Recovery: {result.recovery.suggestion}")
    return "\n".join(lines)


def format_semantic_json(result: SemanticResult, indent: int = 2) -> str:
    """Essential fields only; see ``serializer.to_json`` for the full record."""
    data = {
        "verdict": str(result.verdict),
        "intent": str(result.page_intent.category),
        "confidence": result.confidence,
        "authenticated": result.state.auth.authenticated,
        "loading": result.state.loading.loading,
        "ready": result.state.ready,
        "actions": [a.action for a in result.available_actions],
        "issues": [{"severity": str(i.severity), "problem": i.problem} for i in result.issues],
        **({"recovery": result.recovery.suggestion} if result.recovery else {}),
    }
    return json.dumps(data, ensure_ascii=False, indent=indent)

# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Page-state detection: authentication, loading and errors.

Three independent evaluations over the same signal record.  They do not
compete with each other or with page intent; each produces its own typed
result.  Readiness is derived from loading + error severity on demand and is
never stored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum

from .scoring import CONFIDENCE_DENOMINATOR, ScoringRule, SignalRecord, fired_rules, is_set

logger = logging.getLogger(__name__)

AUTH_MIN_CONFIDENCE = 0.3

# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class AuthPolarity(StrEnum):
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"
    NEUTRAL = "neutral"  # adds confidence, never decides the boolean


_P = AuthPolarity

# Negative rules come last: when both polarities fire, the last one wins.
AUTH_RULES: tuple[ScoringRule, ...] = (
    ScoringRule("has_logout_button", _P.AUTHENTICATED, 40, "logout button present"),
    ScoringRule("has_account_menu", _P.AUTHENTICATED, 30, "user menu present"),
    ScoringRule("has_welcome_text", _P.AUTHENTICATED, 20, "welcome text"),
    ScoringRule("has_username_element", _P.AUTHENTICATED, 15, "username displayed"),
    ScoringRule("has_auth_cookie", _P.NEUTRAL, 10, "auth cookie present"),
    ScoringRule("has_login_link", _P.ANONYMOUS, 30, "login link visible", excludes=("has_logout_button",)),
    ScoringRule("has_signup_link", _P.ANONYMOUS, 20, "signup link visible", excludes=("has_account_menu",)),
    ScoringRule("has_auth_required", _P.ANONYMOUS, 25, "auth-required message"),
)


@dataclass(frozen=True, slots=True)
class AuthState:
    authenticated: bool | None  # None = cannot determine
    confidence: float
    signals: tuple[str, ...] = ()
    username: str | None = None


def detect_auth_state(signals: SignalRecord) -> AuthState:
    """Decide authenticated / anonymous / indeterminate.

    Confidence below 0.3 forces ``authenticated=None`` whichever polarity
    nominally won: ambiguous evidence never yields a confident answer.
    """
    authenticated: bool | None = None
    total = 0
    reasons: list[str] = []
    username: str | None = None

    for rule in fired_rules(signals, AUTH_RULES):
        total += rule.points
        reasons.append(rule.describe(signals))
        if rule.category == AuthPolarity.AUTHENTICATED:
            authenticated = True
        elif rule.category == AuthPolarity.ANONYMOUS:
            authenticated = False

        if rule.signal == "has_welcome_text":
            username = str(signals.get("welcome_name") or "") or None
        elif rule.signal == "has_username_element" and not username:
            username = str(signals.get("username_text") or "") or None

    confidence = min(total / CONFIDENCE_DENOMINATOR, 1.0)
    if confidence < AUTH_MIN_CONFIDENCE:
        authenticated = None

    return AuthState(
        authenticated=authenticated,
        confidence=confidence,
        signals=tuple(reasons),
        username=username,
    )


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class LoadingType(StrEnum):
    SPINNER = "spinner"
    SKELETON = "skeleton"
    PROGRESS = "progress"
    LAZY = "lazy"
    NONE = "none"


# Strict priority: only the first matching indicator type is reported.
LOADING_PRIORITY: tuple[tuple[LoadingType, str], ...] = (
    (LoadingType.SPINNER, "spinner_count"),
    (LoadingType.SKELETON, "skeleton_count"),
    (LoadingType.PROGRESS, "progress_count"),
    (LoadingType.LAZY, "lazy_count"),
)


@dataclass(frozen=True, slots=True)
class LoadingState:
    loading: bool
    type: LoadingType = LoadingType.NONE
    elements: int = 0  # count of matching indicators


def detect_loading_state(signals: SignalRecord) -> LoadingState:
    for loading_type, signal in LOADING_PRIORITY:
        count = signals.get(signal, 0)
        if is_set(count):
            return LoadingState(loading=True, type=loading_type, elements=int(count))
    if is_set(signals.get("body_loading")):
        return LoadingState(loading=True, type=LoadingType.SPINNER, elements=0)
    return LoadingState(loading=False)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ErrorType(StrEnum):
    VALIDATION = "validation"
    API = "api"
    PERMISSION = "permission"
    NOT_FOUND = "notfound"
    SERVER = "server"
    NETWORK = "network"
    UNKNOWN = "unknown"


class ErrorSeverity(StrEnum):
    NONE = "none"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass(frozen=True, slots=True)
class ErrorInfo:
    type: ErrorType
    message: str
    element: str | None = None  # selector hint


@dataclass(frozen=True, slots=True)
class ErrorState:
    has_errors: bool
    errors: tuple[ErrorInfo, ...] = ()
    severity: ErrorSeverity = ErrorSeverity.NONE


# Page-level text matches: one entry each.
_TEXT_ERRORS: tuple[tuple[str, ErrorType, str], ...] = (
    ("has_permission_error", ErrorType.PERMISSION, "Access denied or unauthorized"),
    ("has_not_found_error", ErrorType.NOT_FOUND, "Page or resource not found"),
    ("has_server_error", ErrorType.SERVER, "Server error occurred"),
)

# Element matches: one entry per message.
_ELEMENT_ERRORS: tuple[tuple[str, ErrorType], ...] = (
    ("validation_errors", ErrorType.VALIDATION),
    ("api_errors", ErrorType.API),
    ("toast_errors", ErrorType.UNKNOWN),
)

# Highest severity first; the first tier with a matching error wins.
_SEVERITY_TIERS: tuple[tuple[ErrorSeverity, frozenset[ErrorType]], ...] = (
    (ErrorSeverity.CRITICAL, frozenset({ErrorType.SERVER, ErrorType.PERMISSION})),
    (ErrorSeverity.ERROR, frozenset({ErrorType.API, ErrorType.NOT_FOUND})),
    (ErrorSeverity.WARNING, frozenset({ErrorType.VALIDATION})),
)


def error_severity(errors: tuple[ErrorInfo, ...] | list[ErrorInfo]) -> ErrorSeverity:
    """Maximum severity across ``errors``; any critical error forces critical."""
    present = {e.type for e in errors}
    for severity, types in _SEVERITY_TIERS:
        if present & types:
            return severity
    return ErrorSeverity.NONE


def _as_messages(value: object) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,) if value else ()
    if isinstance(value, (tuple, list)):
        return tuple(str(v) for v in value if v)
    return ()


def detect_error_state(signals: SignalRecord) -> ErrorState:
    errors: list[ErrorInfo] = []

    for signal, error_type, message in _TEXT_ERRORS:
        if is_set(signals.get(signal)):
            errors.append(ErrorInfo(type=error_type, message=message))

    for signal, error_type in _ELEMENT_ERRORS:
        for msg in _as_messages(signals.get(signal)):
            errors.append(ErrorInfo(type=error_type, message=msg))

    return ErrorState(
        has_errors=bool(errors),
        errors=tuple(errors),
        severity=error_severity(errors),
    )


# ---------------------------------------------------------------------------
# Combined
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PageState:
    auth: AuthState
    loading: LoadingState
    errors: ErrorState = field(default_factory=lambda: ErrorState(has_errors=False))

    @property
    def ready(self) -> bool:
        """Not loading and no error/critical-severity page errors."""
        return is_ready(self.loading, self.errors)


def is_ready(loading: LoadingState, errors: ErrorState) -> bool:
    return not loading.loading and errors.severity not in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)


def detect_page_state(signals: SignalRecord) -> PageState:
    """Run the three detectors over one record."""
    state = PageState(
        auth=detect_auth_state(signals),
        loading=detect_loading_state(signals),
        errors=detect_error_state(signals),
    )
    logger.debug(
        "page state: authenticated=%s loading=%s(%s) errors=%d severity=%s",
        state.auth.authenticated,
        state.loading.loading,
        state.loading.type,
        len(state.errors.errors),
        state.errors.severity,
    )
    return state

# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Signal extraction: a fixed battery of page predicates → one flat record.

Every predicate runs against the same snapshot and contributes one named
primitive (bool, int count, or a small string/tuple detail).  A predicate
that raises (typically on a selector the engine cannot parse) is logged and
recorded as its default (False / 0 / empty) so one broken check never aborts
the whole pass.

The record is read-only and shared by every classifier: intent, auth,
loading, errors, landmarks and available actions all read the same keys.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from types import MappingProxyType

from .scoring import SignalRecord, SignalValue
from .snapshot import PageSnapshot

logger = logging.getLogger(__name__)

MAX_ERROR_MESSAGES = 20
MAX_ERROR_MESSAGE_LEN = 200
LONG_CONTENT_CHARS = 2000
MINIMAL_CONTENT_CHARS = 200


@dataclass(frozen=True, slots=True)
class SignalDef:
    """A single named predicate over a snapshot."""

    name: str
    check: Callable[[PageSnapshot], SignalValue]
    default: SignalValue = False


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _exists(selector: str) -> Callable[[PageSnapshot], bool]:
    return lambda s: s.exists(selector)


def _count(selector: str) -> Callable[[PageSnapshot], int]:
    return lambda s: s.count(selector)


def _text_contains(terms: tuple[str, ...]) -> Callable[[PageSnapshot], bool]:
    return lambda s: any(t in s.text.lower() for t in terms)


def _text_matches(pattern: re.Pattern[str]) -> Callable[[PageSnapshot], bool]:
    return lambda s: pattern.search(s.text) is not None


def _control_with_text(
    controls: str,
    terms: tuple[str, ...],
    fallback: str,
) -> Callable[[PageSnapshot], bool]:
    """Buttons/links whose text mentions a term, or an attribute-level fallback selector."""
    return lambda s: s.count_with_text(controls, terms) > 0 or s.exists(fallback)


def _messages(selector: str) -> Callable[[PageSnapshot], tuple[str, ...]]:
    def check(s: PageSnapshot) -> tuple[str, ...]:
        texts = (t[:MAX_ERROR_MESSAGE_LEN] for t in s.texts(selector))
        return tuple(t for t in texts if t)[:MAX_ERROR_MESSAGES]

    return check


def _repeating_cards(s: PageSnapshot) -> bool:
    """3+ card/item elements sharing at most 3 distinct class strings."""
    selector = '[class*="card"], [class*="item"]'
    if s.count(selector) < 3:
        return False
    classes = {el.get("class", "") for el in s.select(selector)}
    return len(classes) <= 3


_WELCOME_RE = re.compile(r"welcome,?\s+(\w+)", re.IGNORECASE)


def _welcome_name(s: PageSnapshot) -> str:
    m = _WELCOME_RE.search(s.text.lower())
    return m.group(1) if m else ""


def _username_text(s: PageSnapshot) -> str:
    texts = s.texts('[class*="username"], [class*="user-name"], [class*="display-name"]', limit=1)
    return texts[0] if texts else ""


def _body_loading(s: PageSnapshot) -> bool:
    classes = s.body_attribute("class").split()
    return "loading" in classes or s.body_attribute("aria-busy") == "true"


def _auth_cookie(s: PageSnapshot) -> bool:
    return any(k in s.cookies for k in ("auth", "session", "token"))


def _first_selector(selector: str) -> Callable[[PageSnapshot], str]:
    """Best stable selector for the first match (id, data-testid, first class, tag)."""

    def check(s: PageSnapshot) -> str:
        matches = s.select(selector)
        if not matches:
            return ""
        el = matches[0]
        if el.get("id"):
            return f"#{el.get('id')}"
        if el.get("data-testid"):
            return f'[data-testid="{el.get("data-testid")}"]'
        cls = el.get("class", "").split()
        if cls:
            return f".{cls[0]}"
        return el.tag.lower()

    return check


# ---------------------------------------------------------------------------
# Intent signals
# ---------------------------------------------------------------------------

_LOGIN_TERMS = ("sign in", "log in", "login", "sign up", "register", "forgot password", "reset password")
_ERROR_CODE_TERMS = ("404", "500", "403", "401", "not found", "error", "denied", "forbidden")
_BACK_TERMS = ("go back", "go home", "return")
_EMPTY_TERMS = ("no results", "nothing here", "no items", "empty")

INTENT_SIGNALS: tuple[SignalDef, ...] = (
    # ---- auth ----
    SignalDef("has_password_field", _exists('input[type="password"]')),
    SignalDef("has_email_field", _exists('input[type="email"], input[name*="email"], input[name*="username"]')),
    SignalDef("has_login_text", _text_contains(_LOGIN_TERMS)),
    SignalDef(
        "has_remember_me",
        lambda s: s.exists('input[type="checkbox"][name*="remember"]') or s.count_with_text("label", ("remember",)) > 0,
    ),
    SignalDef(
        "has_oauth_buttons",
        _exists('[class*="google"], [class*="facebook"], [class*="github"], [class*="oauth"], [class*="social"]'),
    ),
    # ---- form ----
    SignalDef("form_count", _count("form"), 0),
    SignalDef("input_count", _count('input:not([type="hidden"]):not([type="search"])'), 0),
    SignalDef("textarea_count", _count("textarea"), 0),
    SignalDef("select_count", _count("select"), 0),
    SignalDef("has_submit_button", _exists('button[type="submit"], input[type="submit"]')),
    SignalDef("has_form_labels", lambda s: s.count("label") > 2),
    # ---- listing ----
    SignalDef("list_item_count", _count('li, [class*="item"], [class*="card"], [class*="row"]'), 0),
    SignalDef("has_grid", _exists('[class*="grid"], [class*="list"], [class*="feed"]')),
    SignalDef("has_table", _exists("table tbody tr, table > tr")),
    SignalDef("has_pagination", _exists('[class*="pagination"], [class*="pager"], nav[aria-label*="page"]')),
    SignalDef("has_filters", _exists('[class*="filter"], [class*="sort"], [class*="facet"]')),
    SignalDef("has_repeating_cards", _repeating_cards),
    # ---- detail ----
    SignalDef("has_main_article", _exists('article, main > [class*="content"], [class*="detail"]')),
    SignalDef("has_long_content", lambda s: len(s.text) > LONG_CONTENT_CHARS),
    SignalDef("has_single_heading", lambda s: s.count("h1") == 1),
    SignalDef("has_metadata", _exists('[class*="meta"], [class*="author"], [class*="date"], time')),
    SignalDef("has_comments", _exists('[class*="comment"], [id*="comment"]')),
    SignalDef("has_social_share", _exists('[class*="share"], [class*="social"]')),
    # ---- dashboard ----
    SignalDef("has_charts", _exists('canvas, svg[class*="chart"], [class*="chart"], [class*="graph"]')),
    SignalDef("has_stats", _exists('[class*="stat"], [class*="metric"], [class*="kpi"]')),
    SignalDef("has_sidebar", _exists('aside, [class*="sidebar"], nav[class*="side"]')),
    SignalDef("has_widgets", _exists('[class*="widget"], [class*="panel"], [class*="tile"]')),
    SignalDef("has_user_menu", _exists('[class*="user"], [class*="avatar"], [class*="profile"]')),
    SignalDef("has_nav_tabs", _exists('[role="tablist"], [class*="tabs"]')),
    # ---- error ----
    SignalDef("has_error_code", _text_contains(_ERROR_CODE_TERMS)),
    SignalDef("has_error_class", _exists('[class*="error"], [class*="404"], [class*="500"]')),
    SignalDef("is_minimal_content", lambda s: len(s.text) < MINIMAL_CONTENT_CHARS),
    SignalDef("has_back_link", _text_contains(_BACK_TERMS)),
    # ---- landing ----
    SignalDef("has_hero", _exists('[class*="hero"], [class*="banner"], [class*="jumbotron"]')),
    SignalDef("has_cta", _exists('[class*="cta"], [class*="call-to-action"], a[class*="primary"]')),
    SignalDef("has_testimonials", _exists('[class*="testimonial"], [class*="review"], [class*="quote"]')),
    SignalDef("has_pricing", _exists('[class*="pricing"], [class*="plan"]')),
    SignalDef("has_features", _exists('[class*="feature"], [class*="benefit"]')),
    # ---- empty ----
    SignalDef("has_empty_state", _exists('[class*="empty"], [class*="no-data"], [class*="no-results"]')),
    SignalDef("has_empty_text", _text_contains(_EMPTY_TERMS)),
    # ---- general ----
    SignalDef("total_elements", _count("*"), 0),
    SignalDef("interactive_elements", _count("a, button, input, select, textarea"), 0),
)

# ---------------------------------------------------------------------------
# Auth signals
# ---------------------------------------------------------------------------

AUTH_SIGNALS: tuple[SignalDef, ...] = (
    SignalDef(
        "has_logout_button",
        _control_with_text("button, a", ("logout", "sign out"), '[class*="logout"], [data-testid*="logout"]'),
    ),
    SignalDef(
        "has_account_menu",
        _exists(
            '[class*="user-menu"], [class*="avatar"], [class*="profile-menu"], '
            '[class*="account-menu"], [data-testid*="user"]'
        ),
    ),
    SignalDef("has_welcome_text", lambda s: bool(_welcome_name(s))),
    SignalDef("welcome_name", _welcome_name, ""),
    SignalDef(
        "has_username_element",
        _exists('[class*="username"], [class*="user-name"], [class*="display-name"]'),
    ),
    SignalDef("username_text", _username_text, ""),
    SignalDef(
        "has_login_link",
        _control_with_text(
            "a, button",
            ("login", "sign in"),
            '[class*="login-link"], [href*="/login"], [href*="/signin"]',
        ),
    ),
    SignalDef(
        "has_signup_link",
        _control_with_text("a", ("sign up", "register"), '[href*="/signup"], [href*="/register"]'),
    ),
    SignalDef(
        "has_auth_required",
        _exists('[class*="auth-required"], [class*="login-required"], [class*="protected"]'),
    ),
    SignalDef("has_auth_cookie", _auth_cookie),
)

# ---------------------------------------------------------------------------
# Loading signals
# ---------------------------------------------------------------------------

LOADING_SIGNALS: tuple[SignalDef, ...] = (
    SignalDef(
        "spinner_count",
        _count(
            '[class*="spinner"], [class*="loading"], [class*="loader"], '
            '[role="progressbar"][aria-busy="true"], .animate-spin, [class*="spin"]'
        ),
        0,
    ),
    SignalDef(
        "skeleton_count",
        _count(
            '[class*="skeleton"], [class*="shimmer"], [class*="placeholder"], [class*="pulse"], [aria-busy="true"]'
        ),
        0,
    ),
    SignalDef(
        "progress_count",
        _count('progress, [role="progressbar"], [class*="progress-bar"], [class*="loading-bar"]'),
        0,
    ),
    SignalDef("lazy_count", _count('img[loading="lazy"]:not([src]), [class*="lazy"]:not([src])'), 0),
    SignalDef("body_loading", _body_loading),
)

# ---------------------------------------------------------------------------
# Error signals
# ---------------------------------------------------------------------------

_PERMISSION_RE = re.compile(r"access denied|forbidden|unauthorized|not allowed", re.IGNORECASE)
_NOT_FOUND_RE = re.compile(r"not found|404|page doesn't exist|no longer available", re.IGNORECASE)
_SERVER_RE = re.compile(r"500|server error|something went wrong|internal error", re.IGNORECASE)

ERROR_SIGNALS: tuple[SignalDef, ...] = (
    SignalDef(
        "validation_errors",
        _messages(
            '[class*="error"]:not([class*="error-boundary"]), [class*="invalid"], [aria-invalid="true"], '
            ".field-error, .form-error, .validation-error"
        ),
        (),
    ),
    SignalDef(
        "api_errors",
        _messages('[class*="api-error"], [class*="server-error"], [class*="fetch-error"], [class*="network-error"]'),
        (),
    ),
    SignalDef(
        "toast_errors",
        _messages(
            '[class*="toast"][class*="error"], [class*="notification"][class*="error"], '
            '[role="alert"][class*="error"], [class*="snackbar"][class*="error"]'
        ),
        (),
    ),
    SignalDef("has_permission_error", _text_matches(_PERMISSION_RE)),
    SignalDef("has_not_found_error", _text_matches(_NOT_FOUND_RE)),
    SignalDef("has_server_error", _text_matches(_SERVER_RE)),
)

# ---------------------------------------------------------------------------
# Action signals (what a caller could do next)
# ---------------------------------------------------------------------------

_SEARCH_INPUT = 'input[type="search"], input[name*="search"], input[placeholder*="search"]'
_SUBMIT = 'button[type="submit"], input[type="submit"]'

ACTION_SIGNALS: tuple[SignalDef, ...] = (
    SignalDef("has_submit", _exists(_SUBMIT)),
    SignalDef("submit_selector", _first_selector(_SUBMIT), ""),
    SignalDef("has_search", _exists(_SEARCH_INPUT)),
    SignalDef("search_selector", _first_selector(_SEARCH_INPUT), ""),
    SignalDef("has_login_form", _exists('form input[type="password"]')),
    SignalDef("has_nav_links", _exists("nav a, header a")),
    SignalDef("has_back_control", lambda s: s.count_with_text("a, button", ("back",)) > 0),
    SignalDef("has_add_control", lambda s: s.count_with_text("button", ("add", "create", "new")) > 0),
    SignalDef("add_selector", lambda s: _first_matching_text(s, "button", ("add", "create", "new")), ""),
    SignalDef("has_edit_control", lambda s: s.count_with_text("button, a", ("edit",)) > 0),
    SignalDef("has_delete_control", lambda s: s.count_with_text("button", ("delete", "remove")) > 0),
    SignalDef("has_filter_control", _exists('select[name*="filter"], [class*="filter"] select')),
    SignalDef("has_sort_control", _exists('select[name*="sort"], [class*="sort"] select')),
    SignalDef("has_pagination_control", _exists('[class*="pagination"] a, [class*="pager"] button')),
)


def _first_matching_text(s: PageSnapshot, selector: str, terms: tuple[str, ...]) -> str:
    for el in s.select(selector):
        content = el.text_content().lower()
        if any(t in content for t in terms):
            if el.get("id"):
                return f"#{el.get('id')}"
            cls = el.get("class", "").split()
            return f".{cls[0]}" if cls else el.tag.lower()
    return ""


ALL_SIGNALS: tuple[SignalDef, ...] = INTENT_SIGNALS + AUTH_SIGNALS + LOADING_SIGNALS + ERROR_SIGNALS + ACTION_SIGNALS


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def extract_signals(
    snapshot: PageSnapshot,
    battery: Sequence[SignalDef] = ALL_SIGNALS,
) -> SignalRecord:
    """Evaluate ``battery`` against ``snapshot`` into a read-only signal record."""
    values: dict[str, SignalValue] = {}
    failed: list[str] = []
    for sig in battery:
        try:
            values[sig.name] = sig.check(snapshot)
        except Exception:
            logger.debug("Signal %s failed; recording default", sig.name, exc_info=True)
            values[sig.name] = sig.default
            failed.append(sig.name)
    if failed:
        logger.info("Signal extraction degraded: %d predicate(s) failed (%s)", len(failed), ", ".join(failed))
    return MappingProxyType(values)


def signal_record(**values: SignalValue) -> SignalRecord:
    """Build a read-only record by hand (tests, replays of stored signals)."""
    return MappingProxyType(dict(values))

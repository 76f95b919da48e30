# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Page-intent classification: what kind of page is this?

Scores the DOM-shape signals of one snapshot against a fixed rule table over
eight competing intents.  A winner at or below 20 points is reported as
``unknown`` rather than a low-confidence guess, and a runner-up with a real
competing score (>30 and >half the winner) surfaces as ``secondary`` so
mixed-purpose pages (a dashboard with an embedded form) are not collapsed.
"""

from __future__ import annotations

from enum import StrEnum

from .scoring import UNKNOWN_THRESHOLD, ClassificationResult, Classifier, ScoringRule, SignalRecord


class PageIntent(StrEnum):
    # Declaration order is the tie-break order.
    AUTH = "auth"
    FORM = "form"
    LISTING = "listing"
    DETAIL = "detail"
    DASHBOARD = "dashboard"
    ERROR = "error"
    LANDING = "landing"
    EMPTY = "empty"
    UNKNOWN = "unknown"


_I = PageIntent

INTENT_RULES: tuple[ScoringRule, ...] = (
    # ---- auth ----
    ScoringRule("has_password_field", _I.AUTH, 40, "password field present"),
    ScoringRule("has_email_field", _I.AUTH, 20, "email + password combination", requires=("has_password_field",)),
    ScoringRule("has_login_text", _I.AUTH, 15, "login-related text"),
    ScoringRule("has_remember_me", _I.AUTH, 10, "remember me checkbox"),
    ScoringRule("has_oauth_buttons", _I.AUTH, 10, "OAuth buttons"),
    # ---- form (but not auth) ----
    ScoringRule("form_count", _I.FORM, 20, "form without password", excludes=("has_password_field",)),
    ScoringRule("input_count", _I.FORM, 15, "multiple input fields", above=3, excludes=("has_password_field",)),
    ScoringRule("textarea_count", _I.FORM, 15, "textarea present"),
    ScoringRule("input_count", _I.FORM, 10, "labeled form fields", above=2, requires=("has_form_labels",)),
    # ---- listing ----
    ScoringRule("list_item_count", _I.LISTING, 25, "{value} list items", above=5),
    ScoringRule("has_grid", _I.LISTING, 15, "grid/list layout"),
    ScoringRule("has_table", _I.LISTING, 20, "data table"),
    ScoringRule("has_pagination", _I.LISTING, 20, "pagination"),
    ScoringRule("has_filters", _I.LISTING, 15, "filters/sorting"),
    ScoringRule("has_repeating_cards", _I.LISTING, 15, "repeating card elements"),
    # ---- detail ----
    ScoringRule("has_main_article", _I.DETAIL, 25, "main article element"),
    ScoringRule("has_long_content", _I.DETAIL, 20, "long content"),
    ScoringRule("has_single_heading", _I.DETAIL, 20, "single heading with metadata", requires=("has_metadata",)),
    ScoringRule("has_comments", _I.DETAIL, 15, "comments section"),
    ScoringRule("has_social_share", _I.DETAIL, 10, "social share buttons"),
    # ---- dashboard ----
    ScoringRule("has_charts", _I.DASHBOARD, 30, "charts/graphs"),
    ScoringRule("has_stats", _I.DASHBOARD, 25, "stats/metrics"),
    ScoringRule("has_sidebar", _I.DASHBOARD, 20, "sidebar with widgets", requires=("has_widgets",)),
    ScoringRule("has_nav_tabs", _I.DASHBOARD, 10, "navigation tabs"),
    ScoringRule("has_user_menu", _I.DASHBOARD, 10, "user menu"),
    # ---- error ----
    ScoringRule("has_error_code", _I.ERROR, 50, "error code with minimal content", requires=("is_minimal_content",)),
    ScoringRule("has_error_class", _I.ERROR, 30, "error CSS class"),
    ScoringRule("has_back_link", _I.ERROR, 20, "back link on minimal page", requires=("is_minimal_content",)),
    # ---- landing ----
    ScoringRule("has_hero", _I.LANDING, 25, "hero section"),
    ScoringRule("has_cta", _I.LANDING, 20, "call-to-action"),
    ScoringRule("has_testimonials", _I.LANDING, 15, "testimonials"),
    ScoringRule("has_pricing", _I.LANDING, 20, "pricing section"),
    ScoringRule("has_features", _I.LANDING, 15, "features section"),
    # ---- empty ----
    ScoringRule("has_empty_state", _I.EMPTY, 40, "empty state element"),
    ScoringRule("has_empty_text", _I.EMPTY, 30, "empty text with no items", excludes=("list_item_count",)),
)

INTENT_CLASSIFIER = Classifier(
    PageIntent,
    INTENT_RULES,
    unknown=PageIntent.UNKNOWN,
    unknown_threshold=UNKNOWN_THRESHOLD,
    name="page_intent",
)

_DESCRIPTIONS: dict[PageIntent, str] = {
    PageIntent.AUTH: "Authentication page (login, register, password reset)",
    PageIntent.FORM: "Form page (data entry, settings, contact)",
    PageIntent.LISTING: "Listing page (search results, product grid, table)",
    PageIntent.DETAIL: "Detail page (article, product, profile)",
    PageIntent.DASHBOARD: "Dashboard (admin panel, analytics, user home)",
    PageIntent.ERROR: "Error page (404, 500, access denied)",
    PageIntent.LANDING: "Landing page (marketing, homepage)",
    PageIntent.EMPTY: "Empty state (no content)",
    PageIntent.UNKNOWN: "Unknown page type",
}


def classify_intent(signals: SignalRecord) -> ClassificationResult:
    """Classify page intent from a signal record.

    ``result.category`` is a PageIntent; ``unknown`` when no intent scores
    above 20 points.
    """
    return INTENT_CLASSIFIER.classify(signals)


def intent_description(intent: PageIntent | str) -> str:
    """Human-readable description of a page intent."""
    try:
        return _DESCRIPTIONS[PageIntent(intent)]
    except ValueError:
        return _DESCRIPTIONS[PageIntent.UNKNOWN]

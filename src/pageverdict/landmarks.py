# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Landmark element detection and baseline comparison."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from cssselect import SelectorError
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from . import Bounds
from .page_intent import PageIntent
from .snapshot import PageSnapshot

logger = logging.getLogger(__name__)

# Selectors stay within what both cssselect and Playwright accept.
LANDMARK_SELECTORS: dict[str, str] = {
    "logo": 'img[src*="logo"], img[alt*="logo"], img[alt*="Logo"], [class*="logo"], [id*="logo"], svg[class*="logo"]',
    "header": 'header, [role="banner"], [class*="header"]:not([class*="subheader"])',
    "navigation": 'nav, [role="navigation"], [class*="nav"]:not([class*="subnav"])',
    "main": 'main, [role="main"], [class*="main-content"], #main',
    "footer": 'footer, [role="contentinfo"], [class*="footer"]',
    "sidebar": 'aside, [role="complementary"], [class*="sidebar"]',
    "search": 'input[type="search"], [role="search"], [class*="search-input"], input[name*="search"]',
    "heading": "h1",
    "user_menu": '[class*="user-menu"], [class*="avatar"], [class*="profile"], [class*="account"]',
    "login_form": 'form input[type="password"]',
    "hero_section": '[class*="hero"], [class*="banner"], [class*="jumbotron"]',
    "cta_button": '[class*="cta"], a[class*="primary"], button[class*="primary"]',
}

COMMON_LANDMARKS: tuple[str, ...] = ("header", "navigation", "main", "footer", "logo")

_INTENT_LANDMARKS: dict[PageIntent, tuple[str, ...]] = {
    PageIntent.AUTH: ("login_form", "logo"),
    PageIntent.FORM: ("heading",),
    PageIntent.LISTING: ("search", "heading"),
    PageIntent.DETAIL: ("heading",),
    PageIntent.DASHBOARD: ("sidebar", "user_menu", "heading"),
    PageIntent.ERROR: ("heading",),
    PageIntent.LANDING: ("hero_section", "cta_button", "heading"),
    PageIntent.EMPTY: ("heading",),
    PageIntent.UNKNOWN: (),
}


@dataclass(frozen=True, slots=True)
class Landmark:
    name: str
    selector: str
    found: bool
    bounds: Bounds | None = None


@dataclass(frozen=True, slots=True)
class LandmarkComparison:
    missing: tuple[Landmark, ...]  # in baseline, gone from current
    added: tuple[Landmark, ...]
    unchanged: tuple[Landmark, ...]


def detect_landmarks(snapshot: PageSnapshot) -> list[Landmark]:
    """Presence of every landmark in ``LANDMARK_SELECTORS``, in table order.

    A selector the snapshot cannot evaluate counts as not found.
    """
    landmarks: list[Landmark] = []
    for name, selector in LANDMARK_SELECTORS.items():
        try:
            found = snapshot.exists(selector)
        except SelectorError:
            logger.debug("Landmark selector failed: %s", name, exc_info=True)
            found = False
        landmarks.append(Landmark(name=name, selector=selector, found=found))
    return landmarks


async def locate_landmarks(page: Page) -> list[Landmark]:
    """Like ``detect_landmarks`` but against a live page, with bounding boxes."""
    landmarks: list[Landmark] = []
    for name, selector in LANDMARK_SELECTORS.items():
        try:
            handle = await page.query_selector(selector)
            if handle is None:
                landmarks.append(Landmark(name=name, selector=selector, found=False))
                continue
            box = await handle.bounding_box()
        except PlaywrightError:
            logger.debug("Landmark lookup failed: %s", name, exc_info=True)
            landmarks.append(Landmark(name=name, selector=selector, found=False))
            continue

        bounds = None
        if box:
            bounds = Bounds(
                x=round(box["x"]),
                y=round(box["y"]),
                width=round(box["width"]),
                height=round(box["height"]),
            )
        landmarks.append(Landmark(name=name, selector=selector, found=True, bounds=bounds))
    return landmarks


def expected_landmarks_for_intent(intent: PageIntent | str) -> list[str]:
    """Landmarks a page of this intent should have when no baseline exists."""
    try:
        specific = _INTENT_LANDMARKS[PageIntent(intent)]
    except ValueError:
        specific = ()
    return list(dict.fromkeys(COMMON_LANDMARKS + specific))


def compare_landmarks(baseline: list[Landmark], current: list[Landmark]) -> LandmarkComparison:
    baseline_names = {lm.name for lm in baseline if lm.found}
    current_found = [lm for lm in current if lm.found]
    current_names = {lm.name for lm in current_found}

    return LandmarkComparison(
        missing=tuple(lm for lm in baseline if lm.found and lm.name not in current_names),
        added=tuple(lm for lm in current_found if lm.name not in baseline_names),
        unchanged=tuple(lm for lm in current_found if lm.name in baseline_names),
    )


def format_landmark_comparison(comparison: LandmarkComparison) -> str:
    lines: list[str] = []
    if comparison.missing:
        lines.append("Missing (were in baseline):")
        lines.extend(f"  ! {lm.name}" for lm in comparison.missing)
    if comparison.added:
        lines.append("New (not in baseline):")
        lines.extend(f"  + {lm.name}" for lm in comparison.added)
    if comparison.unchanged:
        lines.append("Unchanged:")
        lines.extend(f"  = {lm.name}" for lm in comparison.unchanged)
    return "\n".join(lines)

# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for landmark detection and baseline comparison."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError

from pageverdict import Bounds
from pageverdict.landmarks import (
    COMMON_LANDMARKS,
    LANDMARK_SELECTORS,
    Landmark,
    compare_landmarks,
    detect_landmarks,
    expected_landmarks_for_intent,
    format_landmark_comparison,
    locate_landmarks,
)
from pageverdict.page_intent import PageIntent
from pageverdict.snapshot import HtmlSnapshot


def _found(landmarks: list[Landmark]) -> set[str]:
    return {lm.name for lm in landmarks if lm.found}


class TestDetectLandmarks:
    def test_every_selector_evaluates_under_lxml(self):
        landmarks = detect_landmarks(HtmlSnapshot("<p>plain</p>"))
        assert [lm.name for lm in landmarks] == list(LANDMARK_SELECTORS)
        assert _found(landmarks) == set()

    def test_login_page(self, login_html):
        found = _found(detect_landmarks(HtmlSnapshot(login_html)))
        assert {"logo", "header", "main", "heading", "login_form"} <= found
        assert "footer" not in found

    def test_subheader_alone_is_not_a_header(self):
        found = _found(detect_landmarks(HtmlSnapshot('<div class="subheader">x</div>')))
        assert "header" not in found

    def test_bad_selector_counts_as_missing(self, monkeypatch):
        monkeypatch.setitem(LANDMARK_SELECTORS, "heading", "h1:has-text('x')")
        landmarks = detect_landmarks(HtmlSnapshot("<h1>x</h1>"))
        heading = next(lm for lm in landmarks if lm.name == "heading")
        assert heading.found is False


class TestLocateLandmarks:
    @pytest.mark.asyncio
    async def test_bounds_rounded(self):
        handle = MagicMock()
        handle.bounding_box = AsyncMock(return_value={"x": 0.4, "y": 10.6, "width": 1279.5, "height": 64.2})
        page = MagicMock()
        page.query_selector = AsyncMock(side_effect=lambda sel: handle if sel == LANDMARK_SELECTORS["header"] else None)

        landmarks = await locate_landmarks(page)
        header = next(lm for lm in landmarks if lm.name == "header")
        assert header.found is True
        assert header.bounds == Bounds(x=0, y=11, width=1280, height=64)
        assert _found(landmarks) == {"header"}

    @pytest.mark.asyncio
    async def test_playwright_error_is_not_found(self):
        page = MagicMock()
        page.query_selector = AsyncMock(side_effect=PlaywrightError("Target closed"))
        landmarks = await locate_landmarks(page)
        assert len(landmarks) == len(LANDMARK_SELECTORS)
        assert _found(landmarks) == set()

    @pytest.mark.asyncio
    async def test_hidden_element_has_no_bounds(self):
        handle = MagicMock()
        handle.bounding_box = AsyncMock(return_value=None)
        page = MagicMock()
        page.query_selector = AsyncMock(return_value=handle)
        landmarks = await locate_landmarks(page)
        assert all(lm.found and lm.bounds is None for lm in landmarks)


class TestExpectedLandmarks:
    def test_unknown_is_common_only(self):
        assert expected_landmarks_for_intent(PageIntent.UNKNOWN) == list(COMMON_LANDMARKS)

    def test_auth_deduplicates_logo(self):
        expected = expected_landmarks_for_intent(PageIntent.AUTH)
        assert expected == ["header", "navigation", "main", "footer", "logo", "login_form"]

    def test_dashboard(self):
        expected = expected_landmarks_for_intent("dashboard")
        assert expected[-3:] == ["sidebar", "user_menu", "heading"]

    def test_unrecognized_intent(self):
        assert expected_landmarks_for_intent("carousel") == list(COMMON_LANDMARKS)


class TestCompareLandmarks:
    def _lm(self, name: str, found: bool = True) -> Landmark:
        return Landmark(name=name, selector=LANDMARK_SELECTORS[name], found=found)

    def test_missing_added_unchanged(self):
        baseline = [self._lm("header"), self._lm("footer"), self._lm("sidebar", found=False)]
        current = [self._lm("header"), self._lm("footer", found=False), self._lm("sidebar")]
        comparison = compare_landmarks(baseline, current)
        assert [lm.name for lm in comparison.missing] == ["footer"]
        assert [lm.name for lm in comparison.added] == ["sidebar"]
        assert [lm.name for lm in comparison.unchanged] == ["header"]

    def test_identical(self):
        landmarks = [self._lm("header"), self._lm("main")]
        comparison = compare_landmarks(landmarks, landmarks)
        assert comparison.missing == ()
        assert comparison.added == ()
        assert len(comparison.unchanged) == 2

    def test_format(self):
        baseline = [self._lm("footer"), self._lm("header")]
        comparison = compare_landmarks(baseline, [self._lm("header"), self._lm("search")])
        assert format_landmark_comparison(comparison) == (
            "Missing (were in baseline):\n  ! footer\nNew (not in baseline):\n  + search\nUnchanged:\n  = header"
        )

    def test_format_empty(self):
        assert format_landmark_comparison(compare_landmarks([], [])) == ""

# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Page snapshots: the DOM-query seam between the browser driver and the classifiers.

A snapshot is read once per classification pass.  ``HtmlSnapshot`` parses
serialized HTML with lxml and answers CSS-selector queries through cssselect;
``capture_snapshot()`` builds one from a live Playwright page.  Nothing here
waits, retries or navigates: timing belongs to the capture side.
"""

from __future__ import annotations

import copy
import logging
import re
from typing import Protocol

import lxml.html
from lxml import etree
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from .errors import SnapshotError

logger = logging.getLogger(__name__)

_EMPTY_DOCUMENT = "<html><head></head><body></body></html>"
_NON_TEXT_TAGS = ("script", "style", "noscript", "template")
_WS_RE = re.compile(r"\s+")

_BODY_TEXT_JS = "() => (document.body ? document.body.innerText : '')"
_COOKIE_JS = "() => document.cookie || ''"


class PageSnapshot(Protocol):
    """What the signal extractor needs from a rendered page."""

    url: str
    title: str
    cookies: str

    @property
    def text(self) -> str: ...

    def select(self, selector: str) -> list[lxml.html.HtmlElement]: ...

    def count(self, selector: str) -> int: ...

    def exists(self, selector: str) -> bool: ...

    def texts(self, selector: str, limit: int | None = None) -> list[str]: ...

    def count_with_text(self, selector: str, terms: tuple[str, ...]) -> int: ...

    def body_attribute(self, name: str) -> str: ...


def _normalize(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def _parse(html: str) -> lxml.html.HtmlElement:
    if not html or not html.strip():
        return lxml.html.document_fromstring(_EMPTY_DOCUMENT)
    try:
        return lxml.html.document_fromstring(html)
    except etree.ParserError:
        # Comment-only or whitespace-only markup
        return lxml.html.document_fromstring(_EMPTY_DOCUMENT)


def _visible_text(doc: lxml.html.HtmlElement) -> str:
    """Approximate ``document.body.innerText`` for a parsed document."""
    body = doc.find("body")
    if body is None:
        return ""
    clone = copy.deepcopy(body)
    hidden = [el for el in clone.iter(*_NON_TEXT_TAGS)]
    for el in hidden:
        el.drop_tree()
    return _normalize(clone.text_content())


class HtmlSnapshot:
    """Snapshot backed by an lxml document.

    ``text`` overrides the computed body text, which lets a live capture pass
    the browser's ``innerText`` (layout-aware) instead of the lxml approximation.
    """

    def __init__(
        self,
        html: str,
        *,
        text: str | None = None,
        cookies: str = "",
        url: str = "",
        title: str = "",
    ) -> None:
        self._doc = _parse(html)
        self._text = _normalize(text) if text is not None else _visible_text(self._doc)
        self._cache: dict[str, list[lxml.html.HtmlElement]] = {}
        self.cookies = cookies
        self.url = url
        self.title = title or _normalize(self._doc.findtext(".//title") or "")

    @property
    def text(self) -> str:
        return self._text

    def select(self, selector: str) -> list[lxml.html.HtmlElement]:
        """Elements matching a CSS selector, in document order.

        Unsupported selectors raise (cssselect.SelectorError / ExpressionError);
        callers that must not fail wrap this themselves.
        """
        cached = self._cache.get(selector)
        if cached is None:
            cached = self._doc.cssselect(selector)
            self._cache[selector] = cached
        return cached

    def count(self, selector: str) -> int:
        return len(self.select(selector))

    def exists(self, selector: str) -> bool:
        return bool(self.select(selector))

    def texts(self, selector: str, limit: int | None = None) -> list[str]:
        out = [_normalize(el.text_content()) for el in self.select(selector)]
        return out if limit is None else out[:limit]

    def count_with_text(self, selector: str, terms: tuple[str, ...]) -> int:
        """Count matches whose text contains any term (case-insensitive)."""
        lowered = tuple(t.lower() for t in terms)
        total = 0
        for el in self.select(selector):
            content = el.text_content().lower()
            if any(t in content for t in lowered):
                total += 1
        return total

    def body_attribute(self, name: str) -> str:
        body = self._doc.find("body")
        if body is None:
            return ""
        return body.get(name, "")


async def _evaluate_or_none(page: Page, script: str) -> str | None:
    try:
        value = await page.evaluate(script)
    except PlaywrightError:
        logger.debug("Snapshot evaluate failed: %s", script, exc_info=True)
        return None
    return value if isinstance(value, str) else None


async def capture_snapshot(page: Page) -> HtmlSnapshot:
    """Build an ``HtmlSnapshot`` from a live Playwright page.

    Raises SnapshotError when the DOM itself cannot be serialized.  Body text,
    cookies and title are best-effort: failures degrade to the lxml text
    approximation and empty strings.
    """
    try:
        html = await page.content()
    except PlaywrightError as exc:
        raise SnapshotError(f"Failed to read page content: {exc}") from exc

    text = await _evaluate_or_none(page, _BODY_TEXT_JS)
    cookies = await _evaluate_or_none(page, _COOKIE_JS)
    try:
        title = await page.title()
    except PlaywrightError:
        logger.debug("Snapshot title lookup failed", exc_info=True)
        title = ""

    return HtmlSnapshot(
        html,
        text=text,
        cookies=cookies or "",
        url=page.url,
        title=title,
    )

# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for signal extraction over HTML snapshots."""

from __future__ import annotations

import logging
from types import MappingProxyType

import pytest

from pageverdict.signals import (
    ALL_SIGNALS,
    MAX_ERROR_MESSAGE_LEN,
    MAX_ERROR_MESSAGES,
    SignalDef,
    extract_signals,
    signal_record,
)
from pageverdict.snapshot import HtmlSnapshot


def _signals(html: str, **kwargs):
    return extract_signals(HtmlSnapshot(html, **kwargs))


class TestRecordShape:
    def test_every_signal_present(self, login_html):
        record = _signals(login_html)
        assert set(record) == {s.name for s in ALL_SIGNALS}

    def test_record_is_read_only(self, login_html):
        record = _signals(login_html)
        assert isinstance(record, MappingProxyType)
        with pytest.raises(TypeError):
            record["has_password_field"] = False  # type: ignore[index]

    def test_signal_names_unique(self):
        names = [s.name for s in ALL_SIGNALS]
        assert len(names) == len(set(names))

    def test_signal_record_helper(self):
        record = signal_record(has_charts=True)
        assert record["has_charts"] is True
        assert isinstance(record, MappingProxyType)


class TestIntentSignals:
    def test_login_page(self, login_html):
        record = _signals(login_html)
        assert record["has_password_field"] is True
        assert record["has_email_field"] is True
        assert record["has_login_text"] is True
        assert record["has_remember_me"] is True
        assert record["form_count"] == 1
        assert record["has_submit_button"] is True

    def test_listing_page(self, listing_html):
        record = _signals(listing_html)
        assert record["list_item_count"] >= 7
        assert record["has_grid"] is True
        assert record["has_pagination"] is True
        assert record["has_filters"] is True

    def test_table_without_tbody(self):
        record = _signals("<table><tr><td>1</td></tr></table>")
        assert record["has_table"] is True

    def test_minimal_and_long_content(self):
        assert _signals("<p>404</p>")["is_minimal_content"] is True
        long_record = _signals(f"<article><p>{'word ' * 500}</p></article>")
        assert long_record["has_long_content"] is True
        assert long_record["is_minimal_content"] is False

    def test_input_count_ignores_hidden_and_search(self):
        html = '<input type="hidden"><input type="search"><input type="text"><input>'
        assert _signals(html)["input_count"] == 2


class TestAuthSignals:
    def test_dashboard_auth_details(self, dashboard_html):
        record = _signals(dashboard_html)
        assert record["has_logout_button"] is True
        assert record["has_account_menu"] is True
        assert record["has_welcome_text"] is True
        assert record["welcome_name"] == "alice"
        assert record["username_text"] == "alice"

    def test_welcome_name_is_lowercased(self):
        record = _signals("<p>WELCOME, Bob</p>")
        assert record["has_welcome_text"] is True
        assert record["welcome_name"] == "bob"

    def test_login_link(self):
        record = _signals('<a href="/login">Sign in</a><a href="/signup">Sign up</a>')
        assert record["has_login_link"] is True
        assert record["has_signup_link"] is True
        assert record["has_logout_button"] is False

    @pytest.mark.parametrize(
        "cookies,expected",
        [("session_id=1", True), ("auth_token=x", True), ("theme=dark", False), ("", False)],
    )
    def test_auth_cookie(self, cookies, expected):
        assert _signals("<p>x</p>", cookies=cookies)["has_auth_cookie"] is expected


class TestLoadingSignals:
    def test_body_loading_and_skeletons(self, loading_html):
        record = _signals(loading_html)
        assert record["body_loading"] is True
        assert record["skeleton_count"] == 2

    def test_aria_busy_body(self):
        record = _signals('<html><body aria-busy="true"><p>x</p></body></html>')
        assert record["body_loading"] is True

    def test_idle_page(self, login_html):
        record = _signals(login_html)
        assert record["spinner_count"] == 0
        assert record["body_loading"] is False


class TestErrorSignals:
    def test_validation_messages(self):
        html = '<form><span class="field-error">Email is required</span><input aria-invalid="true"></form>'
        record = _signals(html)
        assert "Email is required" in record["validation_errors"]

    def test_messages_truncated_and_capped(self):
        items = "".join(f'<div class="api-error">{"x" * 300}</div>' for _ in range(30))
        record = _signals(items)
        assert len(record["api_errors"]) == MAX_ERROR_MESSAGES
        assert all(len(m) == MAX_ERROR_MESSAGE_LEN for m in record["api_errors"])

    def test_toast_error(self):
        record = _signals('<div class="toast toast-error">Could not save</div>')
        assert record["toast_errors"] == ("Could not save",)

    @pytest.mark.parametrize(
        "text,signal",
        [
            ("Access denied", "has_permission_error"),
            ("404 Page not found", "has_not_found_error"),
            ("Something went wrong", "has_server_error"),
        ],
    )
    def test_text_errors(self, text, signal):
        assert _signals(f"<p>{text}</p>")[signal] is True


class TestActionSignals:
    def test_submit_selector(self, login_html):
        record = _signals(login_html)
        assert record["has_submit"] is True
        assert record["submit_selector"] == "#login-btn"
        assert record["has_login_form"] is True

    def test_search_selector_falls_back_to_class(self):
        record = _signals('<input type="search" class="q big">')
        assert record["search_selector"] == ".q"

    def test_add_control(self):
        record = _signals('<button class="btn-add">Add item</button>')
        assert record["has_add_control"] is True
        assert record["add_selector"] == ".btn-add"


class TestFailureIsolation:
    def test_failing_predicate_records_default(self, caplog):
        def boom(_snapshot):
            raise RuntimeError("bad selector")

        battery = (
            SignalDef("broken", boom, 0),
            SignalDef("has_form", lambda s: s.exists("form")),
        )
        with caplog.at_level(logging.DEBUG, logger="pageverdict.signals"):
            record = extract_signals(HtmlSnapshot("<form></form>"), battery)
        assert record == {"broken": 0, "has_form": True}
        assert "broken" in caplog.text

    def test_unsupported_selector_degrades(self):
        battery = (SignalDef("weird", lambda s: s.exists("div:has-text('x')")),)
        record = extract_signals(HtmlSnapshot("<div>x</div>"), battery)
        assert record["weird"] is False

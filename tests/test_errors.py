# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for the PageVerdict exception hierarchy."""

from __future__ import annotations

import pytest

from pageverdict.errors import (
    DimensionMismatchError,
    InputValidationError,
    PageVerdictError,
    RuleTableError,
    SnapshotError,
)


class TestHierarchy:
    @pytest.mark.parametrize("exc_type", [InputValidationError, DimensionMismatchError, RuleTableError, SnapshotError])
    def test_all_derive_from_base(self, exc_type):
        assert issubclass(exc_type, PageVerdictError)

    @pytest.mark.parametrize("exc_type", [InputValidationError, DimensionMismatchError, RuleTableError])
    def test_input_errors_are_value_errors(self, exc_type):
        assert issubclass(exc_type, ValueError)

    def test_snapshot_error_is_not_value_error(self):
        assert not issubclass(SnapshotError, ValueError)


class TestDimensionMismatchError:
    def test_carries_sizes(self):
        err = DimensionMismatchError("size mismatch", expected=(10, 10), actual=(10, 12))
        assert str(err) == "size mismatch"
        assert err.expected == (10, 10)
        assert err.actual == (10, 12)

    def test_sizes_optional(self):
        err = DimensionMismatchError("bad")
        assert err.expected is None
        assert err.actual is None

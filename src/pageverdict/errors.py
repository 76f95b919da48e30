# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""PageVerdict exception hierarchy.

All PageVerdict-specific errors inherit from PageVerdictError, allowing callers
to catch the base class for any failure or specific subclasses for targeted
handling.  Ambiguous classifications are never errors: they surface as
``unknown`` / ``None`` values on the result objects.
"""

from __future__ import annotations


class PageVerdictError(Exception):
    """Base exception for all PageVerdict errors."""


class InputValidationError(PageVerdictError, ValueError):
    """Structurally invalid input; any result computed from it would be meaningless."""


class DimensionMismatchError(InputValidationError):
    """Bitmap or capture dimensions do not agree."""

    def __init__(
        self,
        message: str,
        *,
        expected: tuple[int, int] | int | None = None,
        actual: tuple[int, int] | int | None = None,
    ) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class RuleTableError(PageVerdictError, ValueError):
    """A scoring rule table references categories its classifier does not declare."""


class SnapshotError(PageVerdictError):
    """The live page could not be read at all."""

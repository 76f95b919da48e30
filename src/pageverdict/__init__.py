# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""PageVerdict: calibrated, explainable verdicts for a single rendered page.

Turns noisy page signals into graded decisions:
- page intent: what kind of page this is (auth, listing, dashboard, ...)
- page state: authenticated / loading / error, each independent
- visual diff regions: which named areas of a screenshot changed, and how badly
- verdicts: one coarse health verdict per scan, one change verdict per comparison
"""

from __future__ import annotations

from dataclasses import dataclass

__version__ = "0.3.0"


@dataclass(frozen=True, slots=True)
class Bounds:
    """Pixel rectangle on a page or screenshot."""

    x: int
    y: int
    width: int
    height: int

    @property
    def area(self) -> int:
        return max(self.width, 0) * max(self.height, 0)

# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Visual diff region analysis and comparison verdicts.

Input is the RGBA diff bitmap produced by an external pixel-comparison step
(changed pixels painted pure red).  The bitmap is cut into four fixed named
regions; each region's changed-pixel share is measured against that
region's own area, graded into a severity tier, and the surviving regions
drive one comparison verdict:

    MATCH → LAYOUT_BROKEN → UNEXPECTED_CHANGE → EXPECTED_CHANGE

Region layout (percent of width/height):

    header      0–100 × 0–10     top
    navigation  0–20  × 10–90    left
    content     20–100 × 10–90   center
    footer      0–100 × 90–100   bottom
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from . import Bounds
from .errors import DimensionMismatchError

logger = logging.getLogger(__name__)

DIFF_COLOR: tuple[int, int, int] = (255, 0, 0)
NOISE_FLOOR_PERCENT = 0.1  # regions at or below this are dropped
CRITICAL_PERCENT = 30.0
UNEXPECTED_PERCENT = 10.0
UNEXPECTED_OVERALL_PERCENT = 20.0  # whole-image diff that is unexpected on its own
FULL_PAGE_PERCENT = 50.0  # fallback region covers the full page above this
_NAVIGATION_REGIONS = frozenset({"header", "navigation"})
DEFAULT_THRESHOLD_PERCENT = float(os.environ.get("PAGEVERDICT_DIFF_THRESHOLD", "1.0"))


class Location(StrEnum):
    TOP = "top"
    BOTTOM = "bottom"
    LEFT = "left"
    RIGHT = "right"
    CENTER = "center"
    FULL = "full"


class RegionSeverity(StrEnum):
    EXPECTED = "expected"
    UNEXPECTED = "unexpected"
    CRITICAL = "critical"


class ComparisonVerdict(StrEnum):
    MATCH = "MATCH"
    EXPECTED_CHANGE = "EXPECTED_CHANGE"
    UNEXPECTED_CHANGE = "UNEXPECTED_CHANGE"
    LAYOUT_BROKEN = "LAYOUT_BROKEN"


_SEVERITY_RANK: dict[RegionSeverity, int] = {
    RegionSeverity.CRITICAL: 0,
    RegionSeverity.UNEXPECTED: 1,
    RegionSeverity.EXPECTED: 2,
}


@dataclass(frozen=True, slots=True)
class Region:
    """A named rectangle of the diff bitmap with its changed-pixel share."""

    name: str
    location: Location
    bounds: Bounds
    percentage: float  # of this region's own pixels, 2 decimals
    severity: RegionSeverity
    description: str


@dataclass(frozen=True, slots=True)
class RegionSpec:
    """Integer-percent rectangle; resolved to pixels per bitmap size."""

    name: str
    location: Location
    x0: int
    y0: int
    x1: int
    y1: int

    def resolve(self, width: int, height: int) -> Bounds:
        left = width * self.x0 // 100
        top = height * self.y0 // 100
        right = width * self.x1 // 100
        bottom = height * self.y1 // 100
        return Bounds(x=left, y=top, width=max(right - left, 0), height=max(bottom - top, 0))


REGION_SPECS: tuple[RegionSpec, ...] = (
    RegionSpec("header", Location.TOP, 0, 0, 100, 10),
    RegionSpec("navigation", Location.LEFT, 0, 10, 20, 90),
    RegionSpec("content", Location.CENTER, 20, 10, 100, 90),
    RegionSpec("footer", Location.BOTTOM, 0, 90, 100, 100),
)


class DiffResult(BaseModel):
    """Pixel-diff provider output."""

    model_config = ConfigDict(frozen=True)

    match: bool
    diff_percent: float = Field(ge=0.0, le=100.0)
    diff_pixels: int = Field(ge=0)
    total_pixels: int = Field(ge=0)
    threshold: float = 0.1  # per-pixel color tolerance used by the provider
    diff_data: bytes | None = Field(default=None, repr=False)
    width: int | None = None
    height: int | None = None


@dataclass(frozen=True, slots=True)
class Analysis:
    verdict: ComparisonVerdict
    summary: str
    changed_regions: tuple[Region, ...] = ()  # expected-severity regions
    unexpected_changes: tuple[Region, ...] = ()  # unexpected + critical regions
    recommendation: str | None = None

    @property
    def regions(self) -> tuple[Region, ...]:
        return self.unexpected_changes + self.changed_regions


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def ensure_same_dimensions(baseline: tuple[int, int], current: tuple[int, int]) -> None:
    """Raise DimensionMismatchError unless two (width, height) captures agree."""
    if tuple(baseline) != tuple(current):
        raise DimensionMismatchError(
            f"Image dimensions mismatch: baseline ({baseline[0]}x{baseline[1]}) "
            f"vs current ({current[0]}x{current[1]})",
            expected=tuple(baseline),
            actual=tuple(current),
        )


def _validate_bitmap(bitmap: bytes | bytearray | memoryview, width: int, height: int) -> None:
    if width <= 0 or height <= 0:
        raise DimensionMismatchError(
            f"Bitmap dimensions must be positive, got {width}x{height}",
            expected=None,
            actual=(width, height),
        )
    expected = width * height * 4
    if len(bitmap) != expected:
        raise DimensionMismatchError(
            f"Bitmap holds {len(bitmap)} bytes, expected {expected} for {width}x{height} RGBA",
            expected=expected,
            actual=len(bitmap),
        )


# ---------------------------------------------------------------------------
# Region analysis
# ---------------------------------------------------------------------------


def _count_diff_pixels(data: bytes, width: int, bounds: Bounds) -> int:
    r, g, b = DIFF_COLOR
    count = 0
    for y in range(bounds.y, bounds.y + bounds.height):
        start = (y * width + bounds.x) * 4
        row = data[start : start + bounds.width * 4]
        for red, green, blue in zip(row[0::4], row[1::4], row[2::4], strict=True):
            if red == r and green == g and blue == b:
                count += 1
    return count


def region_severity(percentage: float) -> RegionSeverity:
    if percentage > CRITICAL_PERCENT:
        return RegionSeverity.CRITICAL
    if percentage > UNEXPECTED_PERCENT:
        return RegionSeverity.UNEXPECTED
    return RegionSeverity.EXPECTED


def analyze_regions(
    bitmap: bytes | bytearray | memoryview,
    width: int,
    height: int,
) -> list[Region]:
    """Changed named regions of a diff bitmap, most severe first.

    Raises:
        DimensionMismatchError: bitmap size disagrees with ``width × height × 4``.
    """
    _validate_bitmap(bitmap, width, height)
    data = bytes(bitmap)

    regions: list[tuple[Region, float]] = []
    for spec in REGION_SPECS:
        bounds = spec.resolve(width, height)
        if bounds.area == 0:
            continue
        changed = _count_diff_pixels(data, width, bounds)
        pct = changed / bounds.area * 100
        if pct <= NOISE_FLOOR_PERCENT:
            continue
        severity = region_severity(pct)
        rounded = round(pct, 2)
        region = Region(
            name=spec.name,
            location=spec.location,
            bounds=bounds,
            percentage=rounded,
            severity=severity,
            description=f"{spec.name}: {rounded}% of pixels changed",
        )
        regions.append((region, pct))

    regions.sort(key=lambda item: (_SEVERITY_RANK[item[0].severity], -item[1]))
    return [region for region, _ in regions]


# ---------------------------------------------------------------------------
# Verdict
# ---------------------------------------------------------------------------

_VERDICT_SEVERITY: dict[ComparisonVerdict, RegionSeverity] = {
    ComparisonVerdict.LAYOUT_BROKEN: RegionSeverity.CRITICAL,
    ComparisonVerdict.UNEXPECTED_CHANGE: RegionSeverity.UNEXPECTED,
    ComparisonVerdict.EXPECTED_CHANGE: RegionSeverity.EXPECTED,
}


def comparison_verdict(match: bool, diff_percent: float, regions: list[Region]) -> ComparisonVerdict:
    """Pure function of the region set and the overall diff percentage."""
    if match or diff_percent == 0:
        return ComparisonVerdict.MATCH
    if any(r.severity == RegionSeverity.CRITICAL for r in regions):
        return ComparisonVerdict.LAYOUT_BROKEN
    if any(r.severity == RegionSeverity.UNEXPECTED for r in regions) or diff_percent > UNEXPECTED_OVERALL_PERCENT:
        return ComparisonVerdict.UNEXPECTED_CHANGE
    return ComparisonVerdict.EXPECTED_CHANGE


def _summarize(
    verdict: ComparisonVerdict,
    result: DiffResult,
    regions: list[Region],
    threshold_percent: float,
) -> tuple[str, str | None]:
    pct = result.diff_percent
    if verdict == ComparisonVerdict.MATCH:
        return "No visual changes detected. Screenshots are identical.", None
    if verdict == ComparisonVerdict.LAYOUT_BROKEN:
        names = ", ".join(r.name for r in regions if r.severity == RegionSeverity.CRITICAL)
        return (
            f"Major changes detected ({pct}% difference) in {names}. Layout may be broken.",
            "Check for JavaScript errors, missing assets, or layout issues in the affected regions.",
        )
    if verdict == ComparisonVerdict.UNEXPECTED_CHANGE:
        flagged = [r.name for r in regions if r.severity == RegionSeverity.UNEXPECTED]
        where = ", ".join(flagged) if flagged else "multiple areas"
        if any(r.name in _NAVIGATION_REGIONS for r in regions):
            recommendation = "Navigation area changed - verify menu items and links are correct."
        else:
            recommendation = "Review changes carefully - some may be unintentional."
        return (
            f"Significant changes detected in {where} ({pct}% difference). Some changes may be unintentional.",
            recommendation,
        )
    if pct <= threshold_percent:
        return f"Minor changes detected ({pct}% difference). Changes appear intentional.", None
    return (
        f"Moderate changes detected ({pct}% difference, {result.diff_pixels:,} pixels). "
        "Review the diff image to verify changes are as expected.",
        None,
    )


def _fallback_region(result: DiffResult, verdict: ComparisonVerdict) -> Region:
    if result.width and result.height:
        bounds = Bounds(x=0, y=0, width=result.width, height=result.height)
    else:
        bounds = Bounds(x=0, y=0, width=0, height=0)
    return Region(
        name="overall",
        location=Location.FULL if result.diff_percent > FULL_PAGE_PERCENT else Location.CENTER,
        bounds=bounds,
        percentage=result.diff_percent,
        severity=_VERDICT_SEVERITY[verdict],
        description=f"{result.diff_percent}% of pixels changed",
    )


def analyze_comparison(
    result: DiffResult,
    threshold_percent: float = DEFAULT_THRESHOLD_PERCENT,
) -> Analysis:
    """Turn a pixel-diff result into a verdict with region attribution.

    When the diff bitmap is attached, regions come from ``analyze_regions``.
    Whenever the images differ but no named region survives the noise floor,
    a single ``overall`` region is synthesized so callers always get at
    least one region for a non-match.
    """
    regions: list[Region] = []
    if result.diff_data is not None and result.width and result.height and not result.match:
        regions = analyze_regions(result.diff_data, result.width, result.height)

    verdict = comparison_verdict(result.match, result.diff_percent, regions)
    summary, recommendation = _summarize(verdict, result, regions, threshold_percent)
    if verdict != ComparisonVerdict.MATCH and not regions:
        regions = [_fallback_region(result, verdict)]

    logger.debug("comparison verdict=%s diff=%.2f%% regions=%d", verdict, result.diff_percent, len(regions))

    return Analysis(
        verdict=verdict,
        summary=summary,
        changed_regions=tuple(r for r in regions if r.severity == RegionSeverity.EXPECTED),
        unexpected_changes=tuple(r for r in regions if r.severity != RegionSeverity.EXPECTED),
        recommendation=recommendation,
    )


_VERDICT_DESCRIPTIONS: dict[ComparisonVerdict, str] = {
    ComparisonVerdict.MATCH: "No changes - screenshots match",
    ComparisonVerdict.EXPECTED_CHANGE: "Changes detected - appear intentional",
    ComparisonVerdict.UNEXPECTED_CHANGE: "Unexpected changes - review required",
    ComparisonVerdict.LAYOUT_BROKEN: "Layout broken - significant issues detected",
}


def verdict_description(verdict: ComparisonVerdict | str) -> str:
    try:
        return _VERDICT_DESCRIPTIONS[ComparisonVerdict(verdict)]
    except ValueError:
        return "Unknown verdict"

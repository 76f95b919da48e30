# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Result serialization: plain dicts, JSON and a compact text report.

Two output formats:
- JSON: every result object (dataclass, enum, pydantic model) rendered to
  JSON-safe primitives for the storage collaborator
- Scan report: minimal text for agent or terminal consumption
"""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel

from .verdict import ScanResult

# Raw bitmaps are never serialized.
_EXCLUDED_MODEL_FIELDS = {"diff_data"}


def to_dict(obj: Any) -> Any:
    """Recursively convert a result object into JSON-safe primitives.

    Enums become their values, tuples become lists, properties are not
    included (``PageState.ready`` is recomputed by readers).
    """
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, BaseModel):
        return to_dict(obj.model_dump(exclude=_EXCLUDED_MODEL_FIELDS))
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_dict(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, Mapping):
        return {str(to_dict(k)): to_dict(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [to_dict(v) for v in obj]
    if isinstance(obj, (bytes, bytearray)):
        return None
    return obj


def to_json(obj: Any, indent: int = 2) -> str:
    """Serialize any result object to a JSON string."""
    return json.dumps(to_dict(obj), ensure_ascii=False, indent=indent)


_VERDICT_ICONS = {"PASS": "ok", "ISSUES": "!", "FAIL": "x"}


def format_scan_text(result: ScanResult) -> str:
    """Render a scan result as a short text report.

    Format::

        [ok] PASS https://example.com
          listing page, 120 elements (30 interactive)
          [interactivity] Button has no handler
            fix: Add an onClick handler or remove the interactive appearance
    """
    icon = _VERDICT_ICONS.get(result.verdict, "?")
    lines = [f"[{icon}] {result.verdict} {result.url}".rstrip(), f"  {result.summary}"]

    for issue in result.issues:
        lines.append(f"  [{issue.category}] {issue.description}")
        if issue.fix:
            lines.append(f"    fix: {issue.fix}")

    if result.semantic.recovery:
        lines.append(f"  recovery: {result.semantic.recovery.suggestion}")

    return "\n".join(lines)

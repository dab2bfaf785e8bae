"""Assemble classified units into the final, ordered preview."""

import logging
from typing import Iterable

from .classifier import ClassifiedUnit
from .core import NO_PREVIEW, PreviewResult, PreviewUnit
from .imports import normalize_script

logger = logging.getLogger(__name__)


def assemble(units: Iterable[ClassifiedUnit]) -> PreviewResult:
    """Normalize units and give them sequential ids, preserving order.

    Markup units are passed through verbatim. An empty input yields the
    NO_PREVIEW sentinel.
    """
    assembled = []
    seen_names: dict[str, int] = {}
    for unit in units:
        if unit.is_executable:
            normalized = normalize_script(unit.content)
            code, fallback = normalized.code, normalized.fallback_export_name
        else:
            code, fallback = unit.content, ""

        assembled.append(PreviewUnit(
            id=f"block-{len(assembled)}",
            name=_unique_name(unit.name, seen_names),
            code=code,
            fallback_export_name=fallback,
            is_executable=unit.is_executable,
        ))

    if not assembled:
        return NO_PREVIEW
    return PreviewResult(units=tuple(assembled))


def _unique_name(name: str, seen: dict[str, int]) -> str:
    """Suffix repeated labels so navigation entries stay distinguishable."""
    count = seen.get(name, 0) + 1
    seen[name] = count
    return name if count == 1 else f"{name} ({count})"

"""Turn a chat history snapshot into preview units.

scan -> manifest detection / classification -> import normalization ->
assembly. Everything here is synchronous and side-effect free, so the
same snapshot always yields the same preview.
"""

import logging
from typing import Iterable, Optional, Sequence

from .assembler import assemble
from .classifier import classify_regions
from .config import get_preview_window
from .core import ChatMessage, PreviewResult
from .scanner import scan_regions

logger = logging.getLogger(__name__)

# Joins consecutive model messages. Adds no quote or delimiter characters,
# so it cannot unbalance a manifest split across two messages.
MESSAGE_SEPARATOR = "\n"


def has_model_message(history: Sequence[ChatMessage]) -> bool:
    return any(m.role == "model" for m in history)


def preview_text(history: Sequence[ChatMessage], window: Optional[int] = None) -> str:
    """Return the text of the last `window` model messages, most recent last."""
    window = window or get_preview_window()
    model_messages = [m.content for m in history if m.role == "model"]
    return MESSAGE_SEPARATOR.join(model_messages[-window:])


def extract_preview(text: str, project_types: Optional[Iterable[str]] = None) -> PreviewResult:
    regions = scan_regions(text)
    units = classify_regions(regions, project_types)
    result = assemble(units)
    logger.debug("Scanned %d regions into %d preview units", len(regions), len(result.units))
    return result


def build_preview(history: Sequence[ChatMessage], window: Optional[int] = None,
                  project_types: Optional[Iterable[str]] = None) -> PreviewResult:
    """Build the preview for a history snapshot."""
    return extract_preview(preview_text(history, window), project_types)

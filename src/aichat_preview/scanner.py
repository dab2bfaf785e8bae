"""Split a model message into fenced code regions.

Regions are delimited by triple-backtick fences. The opening fence may
carry a language tag (```tsx). A body that opens with ``{`` is treated as
JSON: its closing fence is looked for only after the object ends, since
manifest file contents (READMEs especially) carry fences of their own.
While a response is still streaming the final fence is often missing;
when no complete region exists we recover the unterminated tail as one
implicit region.
"""

import logging
import re
from typing import Optional

from .core import CodeRegion
from .manifest import find_object_end

logger = logging.getLogger(__name__)

FENCE = "```"

_LANG_TAG_RE = re.compile(r"^[\w.+#-]*$")
_MARKUP_RE = re.compile(r"<[A-Za-z!/][^<>]*>")

# Shorter unterminated tails are usually just "```tsx\nimport" noise.
MIN_TRAILING_LENGTH = 20


def scan_regions(text: str) -> list[CodeRegion]:
    """Return the ordered, non-empty code regions found in text."""
    if not text:
        return []

    bodies, tail = split_fences(text)
    bodies = [b.strip() for b in bodies]
    bodies = [b for b in bodies if b]

    if not bodies and tail is not None:
        trailing = _trailing_region(tail)
        if trailing:
            logger.debug("Recovered unterminated trailing region (%d chars)", len(trailing))
            bodies = [trailing]

    regions = [CodeRegion(raw_text=body, ordinal_index=i) for i, body in enumerate(bodies)]

    if not regions and contains_markup(text) and not looks_like_json(text):
        regions = [CodeRegion(raw_text=text.strip(), ordinal_index=0, whole_message=True)]

    return regions


def split_fences(text: str) -> tuple[list[str], Optional[str]]:
    """Return the bodies of closed fences and the text after an unclosed one.

    The second element is everything after the final opening fence
    (language tag included) when that fence is never closed, else None.
    """
    bodies = []
    pos = 0
    while True:
        opening = text.find(FENCE, pos)
        if opening == -1:
            return bodies, None
        after_fence = opening + len(FENCE)
        info_end = text.find("\n", after_fence)
        if info_end == -1:
            return bodies, text[after_fence:]

        body_start = info_end + 1
        search_from = body_start
        first = _skip_whitespace(text, body_start)
        if text.startswith("{", first):
            end = find_object_end(text, first)
            if end is None:
                # Object still open: the stream was cut off inside it.
                return bodies, text[after_fence:]
            search_from = end

        close = text.find(FENCE, search_from)
        if close == -1:
            return bodies, text[after_fence:]
        bodies.append(text[body_start:close])
        pos = close + len(FENCE)


def looks_like_json(text: str) -> bool:
    """True if text is shaped like a bare JSON object or array document."""
    stripped = text.strip()
    if len(stripped) < 2:
        return False
    return (stripped[0], stripped[-1]) in (("{", "}"), ("[", "]"))


def contains_markup(text: str) -> bool:
    return _MARKUP_RE.search(text) is not None


def _skip_whitespace(text: str, pos: int) -> int:
    while pos < len(text) and text[pos].isspace():
        pos += 1
    return pos


def _trailing_region(tail: str) -> str:
    """Strip an optional language-tag line; return "" if too little is left."""
    first_line, newline, rest = tail.partition("\n")
    if newline and _LANG_TAG_RE.match(first_line.strip()):
        tail = rest

    tail = tail.strip()
    if len(tail) <= MIN_TRAILING_LENGTH:
        return ""
    return tail

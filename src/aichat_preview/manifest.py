"""Detect and repair multi-file project manifests embedded in model output.

The model is asked to describe full projects as a JSON object of the form
``{"type": "fullstack", "files": [{"path": ..., "content": ...}], ...}``.
In practice that object arrives wrapped in prose, cut off mid-stream, or
with trailing commas. Detection therefore does not trust the region as a
whole: it anchors on each ``"type"`` key with a recognized value, walks
back to the enclosing brace, and scans forward with a string-aware
delimiter scan to find where the object really ends. Objects that never
close are closed by appending the outstanding delimiters.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from .config import get_project_types
from .core import ManifestFile, ProjectManifest

logger = logging.getLogger(__name__)

_TYPE_RE = re.compile(r'"type"\s*:\s*"([^"\\]*)"')

# How far back from a "type" key we look for the brace that opens its object.
MAX_LOOKBACK = 2000

# How many trailing elements we are willing to drop from a truncated object.
MAX_TRUNCATION_CUTS = 3

_CLOSERS = {"{": "}", "[": "]"}


@dataclass
class _ScanState:
    end: Optional[int] = None  # index just past the closing brace
    stack: list[str] = field(default_factory=list)
    in_string: bool = False
    escape: bool = False
    commas: list[int] = field(default_factory=list)  # outside strings


def is_manifest_candidate(text: str) -> bool:
    return '"type"' in text and '"files"' in text


def detect_manifest(text: str, project_types: Optional[Iterable[str]] = None) -> Optional[ProjectManifest]:
    """Return the first valid manifest embedded in text, or None."""
    if not is_manifest_candidate(text):
        return None

    types = tuple(t.lower() for t in (project_types or get_project_types()))
    tried: set[int] = set()

    for match in _TYPE_RE.finditer(text):
        if match.group(1).strip().lower() not in types:
            continue
        start = find_object_start(text, match.start())
        if start is None or start in tried:
            continue
        tried.add(start)

        manifest = _parse_manifest_at(text, start, types)
        if manifest is not None:
            return manifest
        logger.debug("Skipping unparseable manifest candidate at offset %d", start)

    # "type" may come after a long "files" array, beyond the lookback window.
    first = text.find("{")
    if first != -1 and first not in tried and not text[:first].strip():
        return _parse_manifest_at(text, first, types)

    return None


def find_object_start(text: str, pos: int, max_lookback: int = MAX_LOOKBACK) -> Optional[int]:
    """Walk back from pos to the nearest unmatched opening brace."""
    depth = 0
    stop = max(0, pos - max_lookback)
    for i in range(pos - 1, stop - 1, -1):
        ch = text[i]
        if ch == "}":
            depth += 1
        elif ch == "{":
            if depth == 0:
                return i
            depth -= 1
    return None


def find_object_end(text: str, start: int) -> Optional[int]:
    """Return the index just past the object opening at text[start], or None if it never closes."""
    return _scan(text, start).end


def extract_object(text: str, start: int) -> tuple[str, bool]:
    """Return the JSON object text starting at start and whether it was truncated.

    A truncated object is returned with its missing closing delimiters
    appended.
    """
    state = _scan(text, start)
    if state.end is not None:
        return text[start:state.end], False
    return close_truncated(text[start:]), True


def close_truncated(fragment: str) -> str:
    """Append whatever closing quote and delimiters fragment is missing."""
    state = _scan(fragment, 0)
    if state.end is not None:
        return fragment[:state.end]
    if state.escape:
        fragment = fragment[:-1]
    suffix = '"' if state.in_string else ""
    suffix += "".join(_CLOSERS[c] for c in reversed(state.stack))
    return fragment + suffix


def strip_trailing_commas(text: str) -> str:
    """Remove commas that directly precede a closing brace or bracket."""
    out = []
    in_string = escape = False
    length = len(text)
    for i, ch in enumerate(text):
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == ",":
            j = i + 1
            while j < length and text[j] in " \t\r\n":
                j += 1
            if j < length and text[j] in "}]":
                continue
        out.append(ch)
    return "".join(out)


def parse_json_leniently(candidate: str) -> Optional[Any]:
    """Parse candidate, retrying once without trailing commas."""
    for attempt in (candidate, strip_trailing_commas(candidate)):
        try:
            return json.loads(attempt, strict=False)
        except json.JSONDecodeError:
            continue
    return None


# ── Private helpers ──────────────────────────────────────────────


def _parse_manifest_at(text: str, start: int, types: tuple[str, ...]) -> Optional[ProjectManifest]:
    candidate, truncated = extract_object(text, start)
    manifest = _to_manifest(parse_json_leniently(candidate), types)
    if manifest is not None or not truncated:
        return manifest

    # Still invalid: the cut-off element is probably incomplete ("content": ),
    # so drop trailing elements one at a time and close again.
    fragment = text[start:]
    commas = _scan(fragment, 0).commas
    for cut in reversed(commas[-MAX_TRUNCATION_CUTS:]):
        manifest = _to_manifest(parse_json_leniently(close_truncated(fragment[:cut])), types)
        if manifest is not None:
            logger.debug("Repaired truncated manifest by dropping text after offset %d", start + cut)
            return manifest
    return None


def _scan(text: str, start: int) -> _ScanState:
    """String-aware delimiter scan from text[start], which should be "{"."""
    state = _ScanState()
    for i in range(start, len(text)):
        ch = text[i]
        if state.in_string:
            if state.escape:
                state.escape = False
            elif ch == "\\":
                state.escape = True
            elif ch == '"':
                state.in_string = False
            continue

        if ch == '"':
            state.in_string = True
        elif ch in _CLOSERS:
            state.stack.append(ch)
        elif ch in "}]":
            if state.stack:
                state.stack.pop()
            if not state.stack:
                state.end = i + 1
                return state
        elif ch == ",":
            state.commas.append(i - start)
    return state


def _to_manifest(data: Any, types: tuple[str, ...]) -> Optional[ProjectManifest]:
    if not isinstance(data, dict):
        return None
    kind = data.get("type")
    files = data.get("files")
    if not isinstance(kind, str) or kind.strip().lower() not in types:
        return None
    if not isinstance(files, list):
        return None

    manifest_files = []
    for entry in files:
        if not isinstance(entry, dict):
            continue
        path = entry.get("path")
        if not isinstance(path, str) or not path.strip():
            continue
        content = entry.get("content")
        description = entry.get("description")
        manifest_files.append(ManifestFile(
            path=path.strip(),
            content=content if isinstance(content, str) else "",
            description=description if isinstance(description, str) else None,
        ))

    dependencies = data.get("dependencies")
    explanation = data.get("explanation")
    return ProjectManifest(
        type=kind.strip().lower(),
        files=manifest_files,
        dependencies=[d for d in dependencies if isinstance(d, str)] if isinstance(dependencies, list) else [],
        explanation=explanation if isinstance(explanation, str) else None,
    )

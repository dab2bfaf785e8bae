"""Decide what each code region or manifest file becomes in the preview.

Plain regions go through a small ordered decision table. Each row pairs
a kind with a predicate over precomputed ``RegionFacts``; the first row
that matches wins. Manifest files are filtered down to routed pages,
ordered home-first and given a display name derived from their path.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath
from typing import Callable, Iterable, Optional

from .core import CodeRegion, ManifestFile, ProjectManifest
from .manifest import detect_manifest
from .scanner import contains_markup, looks_like_json

logger = logging.getLogger(__name__)


class RegionKind(str, Enum):
    MANIFEST = "manifest"
    SCRIPT = "script"
    MARKUP = "markup"
    DISCARD = "discard"


@dataclass(frozen=True)
class ClassifiedUnit:
    """A retained unit before import normalization and id assignment."""

    content: str
    is_executable: bool
    name: str


# ── Plain region heuristics ──────────────────────────────────────

SCRIPT_SIGNALS: dict[str, re.Pattern] = {
    "import_export": re.compile(r"^\s*(?:import|export)\b", re.MULTILINE),
    "capitalized_declaration": re.compile(r"\b(?:function|const|class|let|var)\s+[A-Z][\w$]*"),
    "return_jsx": re.compile(r"\breturn\s*\("),
    "component_tag": re.compile(r"<[A-Z][\w.]*[\s/>]"),
}


@dataclass(frozen=True)
class RegionFacts:
    json_shaped: bool
    script_signals: frozenset[str]
    has_markup: bool
    whole_message: bool

    @classmethod
    def of(cls, region: CodeRegion) -> "RegionFacts":
        text = region.raw_text
        return cls(
            json_shaped=looks_like_json(text),
            script_signals=frozenset(name for name, rx in SCRIPT_SIGNALS.items() if rx.search(text)),
            has_markup=contains_markup(text),
            whole_message=region.whole_message,
        )


DECISION_TABLE: tuple[tuple[RegionKind, Callable[[RegionFacts], bool]], ...] = (
    (RegionKind.MARKUP, lambda f: f.whole_message and not f.json_shaped),
    (RegionKind.SCRIPT, lambda f: not f.json_shaped and bool(f.script_signals)),
    (RegionKind.MARKUP, lambda f: not f.json_shaped and f.has_markup),
    (RegionKind.DISCARD, lambda f: True),
)


def classify_region(region: CodeRegion) -> RegionKind:
    """Classify a region that is not a manifest."""
    facts = RegionFacts.of(region)
    for kind, predicate in DECISION_TABLE:
        if predicate(facts):
            return kind
    return RegionKind.DISCARD


# ── Manifest page selection ──────────────────────────────────────

APP_ROOTS = ("app", "src/app")
PAGES_ROOTS = ("pages", "src/pages")
APP_PAGE_NAMES = frozenset({"page.tsx", "page.jsx", "page.js", "page.ts"})
PAGES_EXTENSIONS = (".tsx", ".jsx", ".js")
MARKUP_EXTENSIONS = (".html", ".htm")
COMPONENT_EXTENSIONS = (".tsx", ".jsx")
NON_PAGE_STEMS = frozenset({"layout", "template", "loading", "error", "not-found", "middleware"})

HOME_PAGE_PATHS = (
    "app/page.tsx",
    "app/page.jsx",
    "app/page.js",
    "app/page.ts",
    "src/app/page.tsx",
    "src/app/page.jsx",
    "src/app/page.js",
    "src/app/page.ts",
    "pages/index.tsx",
    "pages/index.jsx",
    "pages/index.js",
    "src/pages/index.tsx",
    "src/pages/index.jsx",
    "src/pages/index.js",
    "index.html",
    "public/index.html",
)

# Used only when a manifest has no routed page at all.
ENTRY_COMPONENT_PATHS = ("src/App.tsx", "src/App.jsx", "App.tsx", "App.jsx", "src/app.tsx", "src/app.jsx")


def normalize_path(path: str) -> str:
    path = path.replace("\\", "/").strip()
    while path.startswith("./"):
        path = path[2:]
    return path.lstrip("/")


def is_page_file(path: str) -> bool:
    """True if path looks like a top-level routed page or a markup document."""
    path = normalize_path(path)
    parts = path.split("/")
    name = parts[-1]
    stem = PurePosixPath(name).stem

    if any(p.startswith("_") or p == "node_modules" for p in parts):
        return False
    if "api" in parts[:-1]:
        return False
    if any(p.startswith("[") and p.endswith("]") for p in parts):
        return False
    if stem in NON_PAGE_STEMS:
        return False

    if name.endswith(MARKUP_EXTENSIONS):
        return True
    if _under(path, APP_ROOTS):
        return name in APP_PAGE_NAMES
    if _under(path, PAGES_ROOTS):
        return name.endswith(PAGES_EXTENSIONS)
    return False


def page_sort_key(path: str) -> tuple[int, str]:
    path = normalize_path(path)
    try:
        rank = HOME_PAGE_PATHS.index(path)
    except ValueError:
        rank = len(HOME_PAGE_PATHS)
    return rank, path


def page_display_name(path: str) -> str:
    """Derive a human label: app/about-us/page.tsx -> "About Us", app/page.tsx -> "Home"."""
    path = normalize_path(path)
    for root in sorted(APP_ROOTS + PAGES_ROOTS, key=len, reverse=True):
        if path.startswith(root + "/"):
            path = path[len(root) + 1:]
            break

    parts = path.split("/")
    name = parts[-1]
    if name in APP_PAGE_NAMES:
        parts = parts[:-1]
    else:
        parts[-1] = PurePosixPath(name).stem

    # Route groups like "(marketing)" do not appear in the URL.
    parts = [p for p in parts if p and not (p.startswith("(") and p.endswith(")"))]
    if parts and parts[-1].lower() == "index":
        parts = parts[:-1]
    if parts and parts[0] == "public":
        parts = parts[1:]

    if not parts:
        return "Home"
    return " / ".join(_title(p) for p in parts)


def select_manifest_files(manifest: ProjectManifest) -> list[ManifestFile]:
    """Return the manifest's previewable files in display order."""
    pages = [f for f in manifest.files if is_page_file(f.path)]
    if pages:
        return sorted(pages, key=lambda f: page_sort_key(f.path))

    entry = _entry_component(manifest.files)
    return [entry] if entry else []


def classify_manifest(manifest: ProjectManifest) -> list[ClassifiedUnit]:
    units = []
    for f in select_manifest_files(manifest):
        path = normalize_path(f.path)
        if is_page_file(path):
            name = page_display_name(path)
        else:
            name = _title(PurePosixPath(path).stem)
        units.append(ClassifiedUnit(
            content=f.content,
            is_executable=not path.endswith(MARKUP_EXTENSIONS),
            name=name,
        ))
    if not units:
        logger.debug("Manifest of type %s has no previewable files", manifest.type)
    return units


# ── Region stream ────────────────────────────────────────────────


def classify_regions(regions: Iterable[CodeRegion], project_types: Optional[Iterable[str]] = None) -> list[ClassifiedUnit]:
    """Turn scanned regions into retained units, in scan order."""
    units: list[ClassifiedUnit] = []
    counters = {RegionKind.SCRIPT: 0, RegionKind.MARKUP: 0}

    for region in regions:
        manifest = detect_manifest(region.raw_text, project_types)
        if manifest is not None:
            units.extend(classify_manifest(manifest))
            continue

        kind = classify_region(region)
        if kind == RegionKind.DISCARD:
            logger.debug("Discarding region %d (no script or markup signals)", region.ordinal_index)
            continue

        counters[kind] += 1
        if region.whole_message:
            name = "Preview"
        elif kind == RegionKind.SCRIPT:
            name = f"Code Block {counters[kind]}"
        else:
            name = f"HTML Preview {counters[kind]}"
        units.append(ClassifiedUnit(
            content=region.raw_text,
            is_executable=kind == RegionKind.SCRIPT,
            name=name,
        ))

    return units


def _under(path: str, roots: tuple[str, ...]) -> bool:
    return any(path.startswith(root + "/") for root in roots)


def _title(segment: str) -> str:
    words = re.split(r"[-_\s]+", segment)
    return " ".join(w[:1].upper() + w[1:] for w in words if w)


def _entry_component(files: list[ManifestFile]) -> Optional[ManifestFile]:
    by_path = {normalize_path(f.path): f for f in files}
    for candidate in ENTRY_COMPONENT_PATHS:
        if candidate in by_path:
            return by_path[candidate]
    for f in files:
        path = normalize_path(f.path)
        parts = path.split("/")
        if path.endswith(COMPONENT_EXTENSIONS) and "api" not in parts and not any(p.startswith("_") for p in parts):
            return f
    return None

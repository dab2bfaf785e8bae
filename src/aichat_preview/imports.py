"""Rewrite module imports for the preview sandbox.

Preview code runs without a bundler, so nothing can actually be imported.
The sandbox instead exposes a few globals (an icon-set proxy among them).
Named imports from those modules become destructuring assignments against
the global, and every other import is removed. Units that never export a
default get one synthesized from their most likely component declaration.
"""

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# module name -> sandbox global standing in for it
SANDBOX_GLOBALS = {
    "lucide-react": "Lucide",
}

# An import starts a line or follows another statement's ";" on the same line.
_STATEMENT_START = r"(?:^|(?<=;))[ \t]*"
# Optional ";", an optional trailing line comment, and the line break if the line ends here.
_STATEMENT_END = r"[ \t]*;?(?:[ \t]*//[^\n]*)?(?:[ \t]*(?:\n|$))?"

_SIDE_EFFECT_IMPORT_RE = re.compile(
    _STATEMENT_START + r"""import\s*['"][^'"\n]+['"]""" + _STATEMENT_END, re.MULTILINE
)
_IMPORT_RE = re.compile(
    _STATEMENT_START + r"""import\s[^;'"]*?\bfrom\s*['"][^'"\n]+['"]""" + _STATEMENT_END, re.MULTILINE
)
_DEFAULT_EXPORT_RE = re.compile(r"\bexport\s+default\b|\bexport\s*\{[^}]*\bas\s+default\b")

_DECLARATION = r"(?:export\s+)?(?:default\s+)?(?:async\s+)?(?:function\*?|const|class|var|let)\s+([A-Za-z_$][\w$]*)"
_TOP_LEVEL_DECL_RE = re.compile(r"^" + _DECLARATION, re.MULTILINE)
_ANY_DECL_RE = re.compile(r"^[ \t]*" + _DECLARATION, re.MULTILINE)


def _global_import_re(module: str) -> re.Pattern:
    return re.compile(
        _STATEMENT_START + r"""import\s*\{([^}]*)\}\s*from\s*['"]""" + re.escape(module) + r"""['"][ \t]*;?""",
        re.MULTILINE,
    )


_GLOBAL_IMPORT_RES = {module: _global_import_re(module) for module in SANDBOX_GLOBALS}


@dataclass(frozen=True)
class NormalizedSource:
    code: str
    fallback_export_name: str


def rewrite_global_imports(code: str) -> str:
    """Turn ``import { A, B as C } from "lucide-react"`` into ``const { A, B: C } = Lucide;``."""
    for module, pattern in _GLOBAL_IMPORT_RES.items():
        global_name = SANDBOX_GLOBALS[module]

        def to_destructuring(match: re.Match, global_name: str = global_name) -> str:
            names = []
            for spec in match.group(1).split(","):
                spec = spec.strip()
                if not spec or spec.startswith("type "):
                    continue
                original, _, alias = spec.partition(" as ")
                names.append(f"{original.strip()}: {alias.strip()}" if alias else original)
            if not names:
                return ""
            return f"const {{ {', '.join(names)} }} = {global_name};"

        code = pattern.sub(to_destructuring, code)
    return code


def strip_imports(code: str) -> str:
    """Remove every import statement; only sandbox globals resolve at render time."""
    code = _SIDE_EFFECT_IMPORT_RE.sub("", code)
    return _IMPORT_RE.sub("", code)


def find_fallback_export(code: str) -> str:
    """Pick the identifier to default-export when the code exports none.

    The first capitalized declaration wins (components are PascalCase);
    otherwise the last declaration. Returns "" if nothing is declared.
    """
    names = _TOP_LEVEL_DECL_RE.findall(code) or _ANY_DECL_RE.findall(code)
    if not names:
        return ""
    for name in names:
        if name[0].isupper():
            return name
    return names[-1]


def has_default_export(code: str) -> bool:
    return _DEFAULT_EXPORT_RE.search(code) is not None


def normalize_script(code: str) -> NormalizedSource:
    fallback = find_fallback_export(code)
    normalized = strip_imports(rewrite_global_imports(code))

    if not has_default_export(normalized):
        if fallback:
            normalized = normalized.rstrip() + f"\n\nexport default {fallback};"
        else:
            logger.warning("Preview unit declares no identifier to export; it will fail to render")

    return NormalizedSource(code=normalized, fallback_export_name=fallback)

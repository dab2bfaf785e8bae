"""Core data models for aichat-preview."""

from dataclasses import dataclass, field
from typing import Optional

ROLES = ("user", "model")


@dataclass(frozen=True)
class ChatMessage:
    """A single message within a chat session.

    Frozen so a history snapshot handed to a reader can never change under it.
    A growing model message is represented by a new ChatMessage per snapshot.
    """

    role: str  # "user" | "model"
    content: str

    def __post_init__(self):
        if self.role not in ROLES:
            raise ValueError(f"Unknown message role: {self.role!r}")


@dataclass(frozen=True)
class CodeRegion:
    """A fenced code region cut out of one message's text."""

    raw_text: str
    ordinal_index: int
    whole_message: bool = False  # no fences found; the message itself looked like markup


@dataclass
class ManifestFile:
    """One file entry of a project manifest."""

    path: str
    content: str
    description: Optional[str] = None


@dataclass
class ProjectManifest:
    """A multi-file project the model emitted as JSON instead of a single block."""

    type: str
    files: list[ManifestFile] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    explanation: Optional[str] = None


@dataclass(frozen=True)
class PreviewUnit:
    """One named, normalized, independently renderable piece of code or markup."""

    id: str  # "block-0", "block-1", ...
    name: str
    code: str
    fallback_export_name: str
    is_executable: bool

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "fallbackName": self.fallback_export_name,
            "isJS": self.is_executable,
        }


@dataclass(frozen=True)
class PreviewResult:
    """Outcome of a preview request: ordered units, or nothing to preview yet."""

    units: tuple[PreviewUnit, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.units

    @property
    def status(self) -> str:
        return "empty" if self.is_empty else "ready"

    def to_dict(self) -> dict:
        data: dict = {"status": self.status}
        if not self.is_empty:
            data["units"] = [u.to_dict() for u in self.units]
        return data


NO_PREVIEW = PreviewResult()

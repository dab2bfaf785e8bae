"""End-to-end tests for preview assembly from model text and histories."""

import json

import pytest

from aichat_preview.assembler import assemble
from aichat_preview.classifier import ClassifiedUnit
from aichat_preview.core import NO_PREVIEW, ChatMessage
from aichat_preview.pipeline import build_preview, extract_preview, has_model_message, preview_text

from conftest import fenced, manifest_json


class TestAssembler:
    def test_sequential_ids_in_order(self):
        result = assemble([
            ClassifiedUnit("function A() {}", True, "Code Block 1"),
            ClassifiedUnit("<p>x</p>", False, "HTML Preview 1"),
        ])
        assert [u.id for u in result.units] == ["block-0", "block-1"]
        assert result.status == "ready"

    def test_markup_passed_through_verbatim(self):
        markup = "<div>\n  import nothing from 'here';\n</div>"
        result = assemble([ClassifiedUnit(markup, False, "HTML Preview 1")])
        unit = result.units[0]
        assert unit.code == markup
        assert unit.fallback_export_name == ""
        assert unit.is_executable is False

    def test_duplicate_names_suffixed(self):
        result = assemble([
            ClassifiedUnit("export default function Home() {}", True, "Home"),
            ClassifiedUnit("export default function Home() {}", True, "Home"),
        ])
        assert [u.name for u in result.units] == ["Home", "Home (2)"]

    def test_empty_is_sentinel(self):
        result = assemble([])
        assert result is NO_PREVIEW
        assert result.is_empty
        assert result.to_dict() == {"status": "empty"}


class TestExtractPreview:
    def test_single_script_block(self, component_reply):
        result = extract_preview(component_reply)
        assert len(result.units) == 1
        unit = result.units[0]
        assert unit.is_executable is True
        assert unit.name == "Code Block 1"
        assert unit.fallback_export_name == "Counter"
        assert "import " not in unit.code

    def test_two_page_manifest_home_first(self, two_page_manifest):
        result = extract_preview("Here is the app:\n\n" + fenced(two_page_manifest, "json"))
        assert [u.name for u in result.units] == ["Home", "About"]
        assert [u.id for u in result.units] == ["block-0", "block-1"]
        home = result.units[0]
        assert "const { Star } = Lucide;" in home.code
        assert "import" not in home.code

    def test_minimal_manifest_code_unchanged(self):
        content = "export default function Home(){return null}"
        text = fenced(json.dumps({"type": "web", "files": [{"path": "app/page.tsx", "content": content}]}))
        result = extract_preview(text)
        assert len(result.units) == 1
        unit = result.units[0]
        assert unit.name == "Home"
        assert unit.is_executable is True
        assert unit.code == content

    def test_json_text_without_markup_is_empty(self):
        assert extract_preview('{"answer": 42, "items": [1, 2]}') is NO_PREVIEW

    def test_prose_is_empty(self):
        assert extract_preview("I can help with that! What colors do you like?").is_empty

    def test_raw_markup_message(self):
        result = extract_preview("<html><body><h1>Hi</h1></body></html>")
        assert [(u.name, u.is_executable) for u in result.units] == [("Preview", False)]

    def test_streaming_truncated_manifest(self, two_page_manifest):
        cut = two_page_manifest.rindex("lib/db/schema.ts")
        partial = "Building it now:\n```json\n" + two_page_manifest[:cut]
        result = extract_preview(partial)
        assert [u.name for u in result.units] == ["Home", "About"]

    @pytest.mark.parametrize("readme_index", [0, 1])
    def test_manifest_with_fenced_readme(self, readme_index):
        files = [
            {"path": "app/page.tsx", "content": "export default function Home() { return <h1>Home</h1> }"},
            {"path": "app/about/page.tsx", "content": "export default function About() { return <h1>About</h1> }"},
        ]
        readme = {"path": "README.md", "content": "# Setup\n\n```bash\nnpm install\nnpm run dev\n```\n"}
        files.insert(readme_index, readme)
        text = "Here is the project:\n\n" + fenced(manifest_json(files), "json") + "\n\nEnjoy!"

        result = extract_preview(text)

        assert [u.name for u in result.units] == ["Home", "About"]
        assert all(u.is_executable for u in result.units)

    def test_truncated_manifest_with_fenced_readme(self):
        files = [
            {"path": "README.md", "content": "```bash\nnpm run dev\n```"},
            {"path": "app/page.tsx", "content": "export default function Home() { return null }"},
            {"path": "app/about/page.tsx", "content": "export default function About() { return null }"},
        ]
        full = manifest_json(files)
        partial = "```json\n" + full[:full.rindex('"app/about/page.tsx"')]
        assert [u.name for u in extract_preview(partial).units] == ["Home"]

    def test_mixed_blocks(self):
        text = (
            fenced("npm install lucide-react", "bash")
            + "\n"
            + fenced("export default function Pricing() { return <div/> }", "tsx")
            + "\n"
            + fenced("<footer>bye</footer>", "html")
        )
        result = extract_preview(text)
        assert [(u.id, u.name) for u in result.units] == [("block-0", "Code Block 1"), ("block-1", "HTML Preview 1")]

    def test_idempotent(self, two_page_manifest, component_reply):
        text = component_reply + "\n" + fenced(two_page_manifest, "json")
        assert extract_preview(text) == extract_preview(text)


class TestHistorySelection:
    def test_uses_latest_model_message(self):
        history = [
            ChatMessage("user", "first"),
            ChatMessage("model", fenced("function Old() {}")),
            ChatMessage("user", "again"),
            ChatMessage("model", fenced("function New() {}")),
        ]
        result = build_preview(history, window=1)
        assert [u.fallback_export_name for u in result.units] == ["New"]

    def test_window_concatenates_split_manifest(self, two_page_manifest):
        split = two_page_manifest.index('"app/page.tsx"')
        history = [
            ChatMessage("user", "build it"),
            ChatMessage("model", "```json\n" + two_page_manifest[:split]),
            ChatMessage("user", "continue"),
            ChatMessage("model", two_page_manifest[split:] + "\n```"),
        ]
        assert [u.name for u in build_preview(history, window=2).units] == ["Home", "About"]

    def test_user_messages_ignored(self):
        history = [ChatMessage("user", fenced("export default function Mine() {}"))]
        assert preview_text(history, window=3) == ""
        assert build_preview(history, window=3).is_empty
        assert not has_model_message(history)

    @pytest.mark.parametrize("window", [1, 2, 5])
    def test_window_keeps_most_recent_last(self, window):
        history = [ChatMessage("model", str(i)) for i in range(5)]
        assert preview_text(history, window).split("\n") == [str(i) for i in range(5 - window, 5)]

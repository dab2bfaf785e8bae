"""Tests for the command-line interface."""

import json

from click.testing import CliRunner

from aichat_preview.cli import main

from conftest import fenced


def test_extract_from_file(tmp_path, component_reply):
    source = tmp_path / "reply.md"
    source.write_text(component_reply, encoding="utf-8")

    result = CliRunner().invoke(main, ["extract", str(source)])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["status"] == "ready"
    assert data["units"][0]["fallbackName"] == "Counter"


def test_extract_from_stdin():
    result = CliRunner().invoke(main, ["extract", "-"], input=fenced("<section>hi</section>", "html"))

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert [u["name"] for u in data["units"]] == ["HTML Preview 1"]


def test_extract_prose_is_empty():
    result = CliRunner().invoke(main, ["extract", "-"], input="No code here.")

    assert result.exit_code == 0
    assert json.loads(result.stdout) == {"status": "empty"}

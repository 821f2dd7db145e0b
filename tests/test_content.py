"""Tests for loading the static content document."""

import json
from pathlib import Path

from shellfolio.content import (
    DEFAULT_COMMANDS,
    DEFAULT_MENU,
    LINK_TEXT,
    LINK_URL,
    get_content,
    load_content,
    parse_content,
)

BUNDLED_CONTENT = Path(__file__).resolve().parents[1] / "data" / "prompts.json"


class TestParseContent:
    """Tests for parse_content."""

    def test_visible_texts(self, content):
        """Help, unsupported and unknown texts load from VISIBLE."""
        assert content.help_text == "help text"
        assert content.unsupported_text == "not available here"

    def test_unknown_message_substitutes_command(self, content):
        """The unknown text names the command that was typed."""
        assert content.unknown_message("frobnicate") == "frobnicate: command not found"

    def test_links(self, content):
        """Hidden links load with their kind and payload."""
        about, github = content.links
        assert about.keyword == "About"
        assert about.kind == LINK_TEXT
        assert about.payload == "About payload"
        assert github.kind == LINK_URL
        assert github.payload == "https://github.com/example"

    def test_link_colour_and_offsets(self):
        """Link colour and offsets are read, and the kind is case-insensitive."""
        parsed = parse_content(
            {
                "HIDDEN": {
                    "LINKS": [
                        {
                            "key": "Blog",
                            "type": "url",
                            "value": "https://example.com",
                            "color": "\x1b[93m",
                            "startOffset": 1,
                            "endOffset": "-1",
                        },
                        {"type": "Text", "value": "no key"},
                    ]
                }
            }
        )
        assert len(parsed.links) == 1
        link = parsed.links[0]
        assert link.kind == LINK_URL
        assert link.color == "\x1b[93m"
        assert (link.start_offset, link.end_offset) == (1, -1)

    def test_vocabulary(self, content):
        """Available and unsupported commands load from COMMANDS."""
        assert content.commands[0] == "ls"
        assert content.unsupported_commands == ["sudo", "rm", "mkdir"]

    def test_defaults_for_missing_sections(self):
        """Missing sections fall back to defaults."""
        parsed = parse_content({})
        assert parsed.commands == DEFAULT_COMMANDS
        assert parsed.menu == DEFAULT_MENU
        assert parsed.links == []
        assert parsed.catalog.children == {}

    def test_menu(self):
        """The intro menu comes from the document."""
        parsed = parse_content(
            {"MENU": [{"icon": "*", "heading": "Blog", "headingColor": "", "description": "Posts"}]}
        )
        assert [item.heading for item in parsed.menu] == ["Blog"]


class TestLoadContent:
    """Tests for reading the content document from disk."""

    def test_load_from_file(self, tmp_path, raw_content):
        """A document on disk is parsed."""
        path = tmp_path / "prompts.json"
        path.write_text(json.dumps(raw_content), encoding="utf-8")
        loaded = load_content(path)
        assert "projects" in loaded.catalog.children

    def test_missing_file_falls_back(self, tmp_path):
        """A missing document yields the defaults."""
        loaded = load_content(tmp_path / "missing.json")
        assert loaded.catalog.children == {}
        assert loaded.commands == DEFAULT_COMMANDS

    def test_malformed_file_falls_back(self, tmp_path):
        """Invalid JSON yields the defaults."""
        path = tmp_path / "prompts.json"
        path.write_text("{oops", encoding="utf-8")
        assert load_content(path).catalog.children == {}

    def test_non_object_falls_back(self, tmp_path):
        """A top-level value that is not an object yields the defaults."""
        path = tmp_path / "prompts.json"
        path.write_text("[]", encoding="utf-8")
        assert load_content(path).links == []

    def test_get_content_caches(self, tmp_path, raw_content):
        """get_content parses each path once."""
        path = tmp_path / "prompts.json"
        path.write_text(json.dumps(raw_content), encoding="utf-8")
        assert get_content(path) is get_content(path)

    def test_bundled_document_loads(self):
        """The shipped data/prompts.json is a valid content document."""
        loaded = load_content(BUNDLED_CONTENT)
        assert "projects" in loaded.catalog.children
        assert any(link.keyword == "About" for link in loaded.links)

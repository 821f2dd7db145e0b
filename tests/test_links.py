"""Tests for dynamic link annotation."""

from shellfolio.content import LINK_TEXT, LINK_URL, LinkEntry
from shellfolio.links import LinkAnnotator, find_keyword, strip_ansi, visual_width_upto
from shellfolio.terminal import VirtualTerminal


class TestKeywordMatching:
    """Whole-word, case-insensitive keyword search."""

    def test_whole_words_only(self):
        """Keywords inside longer words do not match."""
        assert find_keyword("About AboutUs about", "About") == [0, 14]

    def test_punctuation_is_a_boundary(self):
        """Punctuation ends a word."""
        assert find_keyword("(About).", "About") == [1]

    def test_underscore_and_digits_are_word_characters(self):
        """Underscores and digits join a word."""
        assert find_keyword("my_About About2", "About") == []

    def test_escapes_do_not_join_words(self):
        """Colour sequences between words keep them apart."""
        assert find_keyword("\x1b[93mAbout\x1b[0m", "About") == [5]

    def test_strip_ansi(self):
        """strip_ansi removes escape sequences."""
        assert strip_ansi("\x1b[1;31mred\x1b[0m") == "red"

    def test_visual_width(self):
        """Widths skip escapes and count wide glyphs as two columns."""
        assert visual_width_upto("\x1b[31mAbout", 5) == 0
        assert visual_width_upto("🚀 About", 2) == 3


class TestLinkAnnotator:
    """Link regions computed from terminal rows."""

    def make(self, *entries, opened=None):
        terminal = VirtualTerminal(40, 5)
        annotator = LinkAnnotator(
            list(entries),
            prompt_marker="guest@folio ",
            open_url=(opened if opened is not None else []).append,
        )
        annotator.annotate(terminal, "")
        return terminal, annotator

    def test_annotate_returns_text_unchanged(self):
        """annotate passes the output through."""
        terminal = VirtualTerminal(40, 5)
        annotator = LinkAnnotator([LinkEntry("About", LINK_TEXT, "hi")])
        assert annotator.annotate(terminal, "see About") == "see About"

    def test_provider_registered_once(self):
        """The link provider is registered a single time."""
        terminal, annotator = self.make(LinkEntry("About", LINK_TEXT, "hi"))
        annotator.annotate(terminal, "")
        annotator.annotate(terminal, "")
        terminal.write("About")
        assert len(terminal.links_at(0)) == 1

    def test_link_region(self):
        """A keyword yields a link over its columns."""
        terminal, _ = self.make(LinkEntry("About", LINK_TEXT, "hi"))
        terminal.write("See About and AboutUs")
        (link,) = terminal.links_at(0)
        assert (link.start, link.end) == (4, 9)
        assert link.text == "About"

    def test_prompt_rows_skipped(self):
        """Rows holding the prompt get no links."""
        terminal, _ = self.make(LinkEntry("About", LINK_TEXT, "hi"))
        terminal.write("guest@folio ~$ echo About")
        assert terminal.links_at(0) == []

    def test_offsets_apply_to_coloured_keywords(self):
        """Offsets shift the link region for coloured keywords."""
        entry = LinkEntry("About", LINK_TEXT, "hi", color="\x1b[93m", start_offset=1, end_offset=-1)
        terminal, _ = self.make(entry)
        terminal.write("\x1b[93mAbout\x1b[0m About")
        first, second = terminal.links_at(0)
        assert (first.start, first.end) == (1, 4)
        assert (second.start, second.end) == (6, 11)

    def test_text_link_writes_payload(self):
        """Activating a Text link writes its payload."""
        terminal, _ = self.make(LinkEntry("About", LINK_TEXT, "\r\npayload"))
        terminal.write("About")
        assert terminal.activate_link(0, 2) is True
        assert terminal.row_text(1) == "payload"

    def test_url_link_opens(self):
        """Activating a URL link hands it to the opener."""
        opened = []
        terminal, _ = self.make(
            LinkEntry("GitHub", LINK_URL, "https://github.com/example"), opened=opened
        )
        terminal.write("my GitHub")
        assert terminal.activate_link(0, 3) is True
        assert opened == ["https://github.com/example"]

    def test_click_outside_link(self):
        """A click off any link does nothing."""
        terminal, _ = self.make(LinkEntry("About", LINK_TEXT, "hi"))
        terminal.write("About")
        assert terminal.activate_link(0, 5) is False

    def test_no_entries_no_provider(self):
        """No link entries means no provider."""
        terminal = VirtualTerminal(40, 5)
        LinkAnnotator([]).annotate(terminal, "")
        assert terminal.link_provider_registered is False

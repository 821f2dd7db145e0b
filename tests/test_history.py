"""Tests for command history browsing."""

from shellfolio.history import NEWER, OLDER, CommandHistory


class TestCommandHistory:
    """Tests for CommandHistory."""

    def test_empty_history_ignores_steps(self):
        """Stepping an empty history returns nothing."""
        history = CommandHistory()
        assert history.step(OLDER) is None
        assert history.step(NEWER) is None

    def test_record_skips_empty(self):
        """Blank lines are not recorded."""
        history = CommandHistory()
        history.record("")
        assert len(history) == 0
        assert history.cursor == 0

    def test_browse_sequence(self):
        """Up walks back to the oldest entry, Down walks forward to a fresh line."""
        history = CommandHistory()
        history.record("a")
        history.record("b")

        assert history.step(OLDER) == "b"
        assert history.step(OLDER) == "a"
        assert history.step(OLDER) is None
        assert history.cursor == 0
        assert history.step(NEWER) == "b"
        assert history.step(NEWER) == ""
        assert history.cursor == 2
        assert history.step(NEWER) == ""

    def test_record_resets_cursor(self):
        """Recording moves the cursor past the newest entry."""
        history = CommandHistory()
        history.record("a")
        history.record("b")
        history.step(OLDER)
        history.step(OLDER)
        history.record("c")
        assert history.cursor == 3
        assert history.step(OLDER) == "c"

    def test_cursor_stays_in_bounds(self):
        """Repeated steps never leave the history range."""
        history = CommandHistory()
        history.record("only")
        for _ in range(5):
            history.step(OLDER)
        assert history.cursor == 0
        for _ in range(5):
            history.step(NEWER)
        assert history.cursor == 1

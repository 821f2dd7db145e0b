"""Per-keystroke input router.

``TTYHandler.handle`` receives every decoded event for a session and routes it
according to the session's current mode:

- while the intro plays, Enter skips it and everything else is ignored;
- in Normal mode keys edit the prompt line, subject to edit-safety rules that
  keep the cursor out of the prompt and out of rows above it;
- in file-capture mode keys are echoed and Enter collects the typed row;
- in game mode keys go to the game;
- mouse clicks activate links only on an armed Normal prompt.

Ctrl-D leaves capture and game mode; on an armed Normal prompt it ends the
session.
"""

from __future__ import annotations

import logging

from .autocomplete import complete
from .filesystem import normalize_newlines
from .keys import (
    ARROW_DOWN,
    ARROW_LEFT,
    ARROW_RIGHT,
    ARROW_UP,
    BACKSPACE,
    ENTER,
    TAB,
    Event,
    KeyEvent,
    MouseEvent,
)
from .history import NEWER, OLDER
from .session import FileCaptureMode, GameMode, Session

LOGGER = logging.getLogger(__name__)

ERASE_LEFT = "\b \b"
JUMP_UP_TO_END = "\x1b[A\x1b[999C"
JUMP_DOWN_TO_START = "\x1b[B\x1b[999D"


def _is_ctrl(event: KeyEvent, letter: str) -> bool:
    return event.ctrl and event.key == letter


class TTYHandler:
    def __init__(self, session: Session):
        self.session = session
        self.terminal = session.terminal

    def handle(self, event: Event) -> None:
        session = self.session
        if isinstance(event, MouseEvent):
            # Links only answer on a live Normal prompt
            if session.is_normal and session.armed and not session.intro_running:
                self._handle_mouse(event)
            return

        if session.intro_running:
            if event.key == ENTER:
                session.intro.skip()
            return

        mode = session.mode
        if isinstance(mode, GameMode):
            self._handle_game(event, mode)
        elif isinstance(mode, FileCaptureMode):
            self._handle_capture(event, mode)
        else:
            self._handle_normal(event)

    # =========================================================================
    # Mouse
    # =========================================================================

    def _handle_mouse(self, event: MouseEvent) -> None:
        if not event.pressed or event.button != 0:
            return
        row = self.terminal.to_absolute(event.row)
        self.terminal.activate_link(row, event.column)

    # =========================================================================
    # Game and capture
    # =========================================================================

    def _handle_game(self, event: KeyEvent, mode: GameMode) -> None:
        if _is_ctrl(event, "d"):
            self.session.stop_game()
            return
        mode.game.handle_input(event.data)

    def _handle_capture(self, event: KeyEvent, mode: FileCaptureMode) -> None:
        if _is_ctrl(event, "d"):
            self.session.finish_capture()
        elif event.key == ENTER:
            mode.buffer.append(self.terminal.row_text(self.terminal.cursor_row).strip())
            self.terminal.write("\r\n")
        elif event.key == BACKSPACE:
            if self.terminal.cursor_x > 0:
                self.terminal.write(ERASE_LEFT)
        elif not event.ctrl:
            self.terminal.write(event.data)

    # =========================================================================
    # Normal mode
    # =========================================================================

    def _handle_normal(self, event: KeyEvent) -> None:
        session = self.session
        if not session.armed:
            return

        if event.ctrl:
            if event.key == "c":
                self.terminal.write("^C")
                session.write_prompt("\r\n")
            elif event.key == "d":
                self.terminal.write("\r\nlogout\r\n")
                session.request_close()
            return

        if event.key == ENTER:
            self._enter()
        elif event.key == ARROW_UP:
            self._history(OLDER)
        elif event.key == ARROW_DOWN:
            self._history(NEWER)
        elif event.key == BACKSPACE:
            self._backspace()
        elif event.key == TAB:
            self._autocomplete()
        elif event.key == ARROW_LEFT:
            self._arrow_left(event)
        elif event.key == ARROW_RIGHT:
            self._arrow_right(event)
        elif event.printable:
            self._type(event.data)
        self._track_wrap()

    def _track_wrap(self) -> None:
        if self.session.armed:
            self.session.lines_jumped = max(
                0, self.terminal.cursor_row - self.session.prompt_row
            )

    def current_line(self) -> str:
        """The submitted text: every row of the live line with the prompt removed."""
        terminal = self.terminal
        session = self.session
        last = max(terminal.cursor_row, session.prompt_row)
        bottom = terminal.scrolled + terminal.rows - 1
        while last < bottom and terminal.row_text(last + 1):
            last += 1
        text = "".join(
            terminal.row_text(row, trim=False) for row in range(session.prompt_row, last + 1)
        )
        if text.startswith(session.plain_prompt):
            text = text[len(session.plain_prompt):]
        return text.strip()

    def _enter(self) -> None:
        session = self.session
        command = self.current_line()
        session.history.record(command)
        self.terminal.write("\r\n")
        output = normalize_newlines(session.submit(command))

        if session.closed:
            if output:
                self.terminal.write(output + "\r\n")
            return
        if not session.is_normal:
            LOGGER.debug("Command %r switched mode to %s", command, type(session.mode).__name__)
            return
        if output:
            self.terminal.write(output + "\r\n")
        session.write_prompt()

    def _history(self, direction: int) -> None:
        session = self.session
        if self.terminal.cursor_row != session.prompt_row:
            return
        entry = session.history.step(direction)
        if entry is None:
            return
        self.terminal.write("\x1b[J\x1b[2K\r" + session.prompt + entry)

    def _backspace(self) -> None:
        session = self.session
        row = self.terminal.cursor_row
        x = self.terminal.cursor_x

        if row < session.prompt_row:
            return
        if x == 0 and row > session.prompt_row:
            self.terminal.write(JUMP_UP_TO_END + "\x1b[K")
            session.lines_jumped -= 1
            return
        if row == session.prompt_row:
            if x > session.prompt_length:
                self.terminal.write(ERASE_LEFT)
            return
        self.terminal.write(ERASE_LEFT)

    def _autocomplete(self) -> None:
        session = self.session
        typed = self.terminal.text_before_cursor()
        if typed.startswith(session.plain_prompt):
            typed = typed[len(session.plain_prompt):]

        result = complete(typed, session.content.commands, session.navigator)
        if result.suffix:
            self.terminal.write(result.suffix)
        elif result.listing:
            self.terminal.write("\r\n" + "  ".join(result.listing) + "\r\n")
            session.write_prompt(current_input=result.input)

    def _arrow_left(self, event: KeyEvent) -> None:
        session = self.session
        row = self.terminal.cursor_row
        x = min(self.terminal.cursor_x, self.terminal.columns - 1)

        if row < session.prompt_row:
            return
        if row == session.prompt_row and x <= session.prompt_length:
            return
        if x == 0:
            self.terminal.write(JUMP_UP_TO_END)
        else:
            self.terminal.write(event.data)

    def _arrow_right(self, event: KeyEvent) -> None:
        row = self.terminal.cursor_row
        if row < self.session.prompt_row:
            return
        if self.terminal.cursor_x >= self.terminal.columns - 1:
            self.terminal.write(JUMP_DOWN_TO_START)
        else:
            self.terminal.write(event.data)

    def _type(self, data: str) -> None:
        session = self.session
        row = self.terminal.cursor_row

        if row < session.prompt_row:
            return
        if session.lines_jumped > 0:
            self.terminal.write(data)
            return
        if self.terminal.cursor_x < session.prompt_length:
            return
        self.terminal.write(data)

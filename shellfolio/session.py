"""Per-connection shell session.

A ``Session`` owns everything one visitor interacts with: the terminal
surface, filesystem navigator, history, link annotator, timers and the current
mode. The mode is a single field holding exactly one of ``NormalMode``,
``FileCaptureMode`` or ``GameMode``; switching modes replaces that field, so
two modes can never be active at once.
"""

from __future__ import annotations

import logging
import time
import webbrowser
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Union

from colorama import Fore, Style

from .command_handler import handle_command
from .config import Config, get_config
from .content import ShellContent
from .filesystem import FileSystemNavigator
from .game import SpaceInvadersGame
from .history import CommandHistory
from .intro import TypeAnimation, build_intro_lines
from .links import LinkAnnotator
from .metrics import get_metrics_collector
from .scheduler import Scheduler, TimerHandle
from .storage import CreatedFileOverlay, HighScoreStore
from .terminal import VirtualTerminal

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class NormalMode:
    pass


@dataclass
class FileCaptureMode:
    filename: str
    append: bool
    buffer: List[str] = field(default_factory=list)


@dataclass
class GameMode:
    game: SpaceInvadersGame
    timer: TimerHandle


Mode = Union[NormalMode, FileCaptureMode, GameMode]


class Session:
    def __init__(
        self,
        terminal: VirtualTerminal,
        content: ShellContent,
        overlay: CreatedFileOverlay,
        high_scores: HighScoreStore,
        config: Optional[Config] = None,
        scheduler: Optional[Scheduler] = None,
        open_url: Optional[Callable[[str], object]] = None,
    ):
        self.config = config or get_config()
        self.terminal = terminal
        self.content = content
        self.high_scores = high_scores
        self.scheduler = scheduler if scheduler is not None else Scheduler()
        self.user = self.config.shell.user
        self.hostname = self.config.shell.hostname
        self.navigator = FileSystemNavigator(content.catalog, overlay)
        self.history = CommandHistory()
        self.annotator = LinkAnnotator(
            content.links,
            prompt_marker=f"{self.user}@{self.hostname} ",
            open_url=open_url or webbrowser.open,
        )
        self.mode: Mode = NormalMode()
        self.intro: Optional[TypeAnimation] = None
        self.prompt_row = 0
        self.lines_jumped = 0
        self.armed = False
        self.closed = False
        self.started_at = time.time()

    # -- prompt ----------------------------------------------------------------

    @property
    def plain_prompt(self) -> str:
        return f"{self.user}@{self.hostname} {self.navigator.get_current_path()}$ "

    @property
    def prompt(self) -> str:
        return (
            f"{Fore.GREEN}{self.user}@{self.hostname}{Style.RESET_ALL} "
            f"{Fore.BLUE}{self.navigator.get_current_path()}{Style.RESET_ALL}$ "
        )

    @property
    def prompt_length(self) -> int:
        return len(self.plain_prompt)

    def write_prompt(self, prefix: str = "", current_input: str = "") -> None:
        """Write a prompt and re-arm line editing once the write has landed."""
        self.armed = False
        self.terminal.write(prefix + self.prompt + current_input, callback=self.rearm)

    def rearm(self) -> None:
        self.prompt_row = self.terminal.cursor_row
        self.lines_jumped = 0
        self.armed = True

    # -- mode ------------------------------------------------------------------

    @property
    def is_normal(self) -> bool:
        return isinstance(self.mode, NormalMode)

    @property
    def intro_running(self) -> bool:
        return self.intro is not None and not self.intro.done

    def start(self) -> None:
        """Play the intro (if enabled) and then show the first prompt."""
        self.annotator.annotate(self.terminal, "")
        intro_config = self.config.intro
        if not intro_config.enabled:
            self._intro_finished()
            return
        self.intro = TypeAnimation(
            self.terminal,
            build_intro_lines(self.terminal.columns, self.content.menu),
            char_delay=intro_config.char_delay,
            line_delay=intro_config.line_delay,
        )
        self.intro.run(self.scheduler, self._intro_finished)

    def _intro_finished(self) -> None:
        LOGGER.debug("Intro finished, shell ready")
        self.write_prompt("\r\n")

    def start_capture(self, filename: str, append: bool) -> None:
        buffer: List[str] = []
        if append:
            existing = self.navigator.get_created_file(filename)
            if existing:
                buffer = existing.split("\n")
        self.mode = FileCaptureMode(filename=filename, append=append, buffer=buffer)
        self.armed = False
        LOGGER.info("Capturing input into %s (append=%s)", filename, append)

    def finish_capture(self) -> None:
        mode = self.mode
        if not isinstance(mode, FileCaptureMode):
            return
        self.navigator.write(mode.filename, "\n".join(mode.buffer))
        self.mode = NormalMode()
        LOGGER.info("Saved %d line(s) to %s", len(mode.buffer), mode.filename)
        self.write_prompt("\r\n")

    def start_game(self) -> None:
        game = SpaceInvadersGame(self.terminal, self.high_scores, self.config.game)
        game.start()
        timer = self.scheduler.call_repeating(self.config.game.tick_interval, game.tick)
        self.mode = GameMode(game=game, timer=timer)
        self.armed = False
        get_metrics_collector().record_game_started()
        LOGGER.info("Entered arcade mode")

    def stop_game(self) -> None:
        mode = self.mode
        if not isinstance(mode, GameMode):
            return
        mode.timer.cancel()
        mode.game.stop()
        self.mode = NormalMode()
        LOGGER.info("Left arcade mode with score %d", mode.game.score)
        self.terminal.write("\x1b[2J\x1b[H")
        self.write_prompt("\r\n")

    # -- commands --------------------------------------------------------------

    def clear_screen(self) -> None:
        self.terminal.clear()

    def request_close(self) -> None:
        self.closed = True

    def submit(self, line: str) -> str:
        """Dispatch a submitted line and return its annotated output."""
        return handle_command(line, self)

    def open_url_in_stream(self, url: str) -> None:
        """Deliver a URL link as an OSC 8 hyperlink in the terminal stream."""
        self.terminal.write(f"\r\n\x1b]8;;{url}\x1b\\{url}\x1b]8;;\x1b\\\r\n")
        if self.is_normal and self.armed:
            self.write_prompt()

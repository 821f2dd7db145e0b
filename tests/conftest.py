"""Shared fixtures for shellfolio tests."""

import copy

import pytest

from shellfolio.config import Config, GameConfig, IntroConfig, ShellConfig
from shellfolio.content import parse_content
from shellfolio.filesystem import FileSystemNavigator
from shellfolio.keys import KeyDecoder
from shellfolio.scheduler import Scheduler
from shellfolio.session import Session
from shellfolio.storage import CreatedFileOverlay, HighScoreStore, JsonStore
from shellfolio.terminal import VirtualTerminal
from shellfolio.tty_handler import TTYHandler

SAMPLE_CONTENT = {
    "FILESYSTEM": {
        "~": {"files": {"README.md": {"content": "hello\nworld"}}},
        "projects": {
            "description": "My work",
            "files": {"overview.txt": {"content": "overview"}},
            "subdirectories": {
                "web": {"files": {"site.txt": {"content": "site"}}},
            },
        },
        "contact": {"files": {"email.txt": {"content": "me@example.com"}}},
    },
    "VISIBLE": {
        "HELP": "help text",
        "UNSUPPORTED": "not available here",
        "UNKNOWN": "{command}: command not found",
    },
    "HIDDEN": {
        "LINKS": [
            {"key": "About", "type": "Text", "value": "About payload"},
            {"key": "GitHub", "type": "URL", "value": "https://github.com/example"},
        ]
    },
    "COMMANDS": {
        "available": [
            "ls",
            "cat",
            "cd",
            "clear",
            "cls",
            "help",
            "pwd",
            "echo",
            "touch",
            "tree",
            "whoami",
            "exit",
        ],
        "unsupported": ["sudo", "rm", "mkdir"],
    },
}


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def raw_content():
    return copy.deepcopy(SAMPLE_CONTENT)


@pytest.fixture
def content(raw_content):
    return parse_content(raw_content)


@pytest.fixture
def files_path(tmp_path):
    return tmp_path / "created_files.json"


@pytest.fixture
def overlay(files_path):
    return CreatedFileOverlay(JsonStore(files_path, "created files"))


@pytest.fixture
def high_scores(tmp_path):
    return HighScoreStore(JsonStore(tmp_path / "high_score.json", "high score"))


@pytest.fixture
def navigator(content, overlay):
    return FileSystemNavigator(content.catalog, overlay)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler(clock):
    return Scheduler(clock=clock)


@pytest.fixture
def config():
    return Config(
        intro=IntroConfig(enabled=False, char_delay=0.02, line_delay=0.15),
        shell=ShellConfig(user="guest", hostname="folio"),
        game=GameConfig(
            tick_interval=0.05,
            rows=3,
            cols=6,
            move_threshold=10,
            threshold_step=2,
            min_threshold=2,
        ),
    )


@pytest.fixture
def opened():
    """URLs handed to the link opener."""
    return []


@pytest.fixture
def session(content, overlay, high_scores, config, scheduler, opened):
    return Session(
        terminal=VirtualTerminal(columns=80, rows=24),
        content=content,
        overlay=overlay,
        high_scores=high_scores,
        config=config,
        scheduler=scheduler,
        open_url=opened.append,
    )


@pytest.fixture
def make_shell():
    return Shell


@pytest.fixture
def shell(session):
    """A started session with a helper to send raw keyboard input."""
    session.start()
    return Shell(session)


class Shell:
    """Feeds raw input bytes through the decoder and the input router."""

    def __init__(self, session):
        self.session = session
        self.terminal = session.terminal
        self.handler = TTYHandler(session)
        self.decoder = KeyDecoder()

    def send(self, data):
        if isinstance(data, str):
            data = data.encode("utf-8")
        for event in self.decoder.feed(data):
            self.handler.handle(event)

    def run(self, command):
        self.send(command + "\r")

    @property
    def current_row(self):
        return self.terminal.row_text(self.terminal.cursor_row)

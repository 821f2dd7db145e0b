"""Arcade sub-mode: a small space-invaders round played inside the terminal.

Positions are 1-based terminal coordinates (``x`` column, ``y`` row) so they
can be written straight into cursor-position sequences. The session drives
``tick()`` from a repeating timer and forwards keystrokes to ``handle_input``.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import List, Optional

from .config import GameConfig
from .storage import HighScoreStore
from .terminal import VirtualTerminal

LOGGER = logging.getLogger(__name__)

RESET = "\x1b[0m"
PLAYER_COLOR = "\x1b[1;32m"
ALIEN_COLOR = "\x1b[1;35m"
GAME_OVER_COLOR = "\x1b[1;31m"
SCORE_COLOR = "\x1b[1;36m"

BULLET_PALETTE = [
    "\x1b[1;31m",
    "\x1b[1;33m",
    "\x1b[1;34m",
    "\x1b[1;35m",
    "\x1b[1;36m",
    "\x1b[1;37m",
]

ALIEN_GLYPH = "-(o)-"
PLAYER_GLYPH = "/_^_\\"
ALIEN_WIDTH = len(ALIEN_GLYPH)
ALIEN_SPACING = 3
POINTS_PER_HIT = 10

LEFT_KEYS = ("\x1b[D", "\x1bOD")
RIGHT_KEYS = ("\x1b[C", "\x1bOC")


@dataclass
class Bullet:
    x: int
    y: int
    color: str


@dataclass
class Alien:
    x: int
    y: int


class SpaceInvadersGame:
    def __init__(
        self,
        terminal: VirtualTerminal,
        high_scores: HighScoreStore,
        config: Optional[GameConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.terminal = terminal
        self.high_scores = high_scores
        self.config = config or GameConfig()
        self.rng = rng or random.Random()
        self.width = terminal.columns
        self.height = terminal.rows
        self.high_score = high_scores.value
        self.reset()

    @property
    def player_row(self) -> int:
        return self.height - 1

    def reset(self) -> None:
        self.score = 0
        self.game_over = False
        self.player_x = self.width // 2
        self.bullets: List[Bullet] = []
        self.aliens: List[Alien] = []
        self.direction = 1
        self.move_counter = 0
        self.move_threshold = self.config.move_threshold
        self.init_aliens()

    def init_aliens(self) -> None:
        self.aliens = []
        step = ALIEN_WIDTH + ALIEN_SPACING
        # Narrow terminals get fewer columns; the wave stays inside x >= 3
        cols = max(1, min(self.config.cols, (self.width - 6) // step))
        start_x = max(3, (self.width - cols * step) // 2)
        for row in range(self.config.rows):
            for col in range(cols):
                self.aliens.append(Alien(x=start_x + col * step, y=row + 3))

    # -- lifecycle -------------------------------------------------------------

    def start(self) -> None:
        LOGGER.info("Arcade round started on %dx%d", self.width, self.height)
        self.terminal.clear()
        self.terminal.write("\x1b[?25l")
        self.render()

    def stop(self) -> None:
        self.terminal.write("\x1b[?25h")
        self.terminal.clear()

    def restart(self) -> None:
        LOGGER.info("Arcade round restarted")
        self.reset()
        self.terminal.clear()
        self.render()

    # -- input -----------------------------------------------------------------

    def handle_input(self, data: str) -> None:
        if self.game_over:
            if data.lower() == "r":
                self.restart()
            return

        if data in LEFT_KEYS:
            self.player_x = max(3, self.player_x - 2)
        elif data in RIGHT_KEYS:
            self.player_x = min(self.width - 3, self.player_x + 2)
        elif data == " ":
            self.shoot()

    def shoot(self) -> None:
        self.bullets.append(
            Bullet(x=self.player_x, y=self.player_row - 1, color=self.rng.choice(BULLET_PALETTE))
        )

    # -- simulation ------------------------------------------------------------

    def tick(self) -> None:
        if self.game_over:
            return
        self.update()
        if self.game_over:
            self.render_game_over()
        else:
            self.render()

    def update(self) -> None:
        for bullet in self.bullets:
            bullet.y -= 1
        self.bullets = [bullet for bullet in self.bullets if bullet.y >= 1]

        self.move_counter += 1
        if self.move_counter >= self.move_threshold:
            self.move_counter = 0
            self._move_aliens()

        self._collide()

        if not self.aliens:
            self.init_aliens()
            self.move_threshold = max(
                self.config.min_threshold, self.move_threshold - self.config.threshold_step
            )
            LOGGER.debug("Wave cleared, move threshold now %d", self.move_threshold)

        if any(alien.y >= self.player_row for alien in self.aliens):
            self.end_round()

    def _move_aliens(self) -> None:
        hit_edge = any(
            (self.direction == 1 and alien.x >= self.width - 7)
            or (self.direction == -1 and alien.x <= 2)
            for alien in self.aliens
        )
        if hit_edge:
            self.direction *= -1
            for alien in self.aliens:
                alien.y += 1
            self.move_threshold = max(self.config.min_threshold, self.move_threshold - 1)
        else:
            for alien in self.aliens:
                alien.x += self.direction

    def _collide(self) -> None:
        for bullet in list(self.bullets):
            for alien in self.aliens:
                if bullet.y == alien.y and alien.x <= bullet.x <= alien.x + ALIEN_WIDTH - 1:
                    self.aliens.remove(alien)
                    self.bullets.remove(bullet)
                    self.score += POINTS_PER_HIT
                    if self.score > self.high_score:
                        self.high_score = self.score
                        self.high_scores.save(self.score)
                    break

    def end_round(self) -> None:
        self.game_over = True
        LOGGER.info("Arcade round over with score %d", self.score)
        if self.score > self.high_scores.value:
            self.high_score = self.score
            self.high_scores.save(self.score)

    # -- rendering -------------------------------------------------------------

    def render(self) -> None:
        frame = [
            "\x1b[2J",
            f"\x1b[1;1H{SCORE_COLOR}SCORE: {self.score}   HIGH: {self.high_score}{RESET}",
            ALIEN_COLOR,
        ]
        for alien in self.aliens:
            frame.append(f"\x1b[{alien.y};{alien.x}H{ALIEN_GLYPH}")
        frame.append(RESET)
        for bullet in self.bullets:
            frame.append(f"{bullet.color}\x1b[{bullet.y};{bullet.x}H!{RESET}")
        frame.append(
            f"\x1b[{self.player_row};{self.player_x - 2}H{PLAYER_COLOR}{PLAYER_GLYPH}{RESET}"
        )
        self.terminal.write("".join(frame))

    def render_game_over(self) -> None:
        middle = self.height // 2
        title = "--- GAME OVER ---"
        score = f"Score: {self.score}   High: {self.high_score}"
        hint = "Press 'r' to restart or Ctrl-D to exit"
        self.terminal.write(
            "\x1b[2J"
            f"\x1b[{middle};{max(1, (self.width - len(title)) // 2)}H{GAME_OVER_COLOR}{title}{RESET}"
            f"\x1b[{middle + 2};{max(1, (self.width - len(score)) // 2)}H{score}"
            f"\x1b[{middle + 3};{max(1, (self.width - len(hint)) // 2)}H{hint}"
        )

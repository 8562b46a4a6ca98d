# vault_match/engine.py
"""
Match engine for one round of the vault minigame.

Every public entry point checks its gate and makes its synchronous changes
before the first await; the animated remainder runs as a task owned by the
session. `settle()` waits until no task is left.
"""

from __future__ import annotations

import asyncio
import logging
import random
from enum import Enum
from typing import Callable, Optional, Set

from .board import Board, Card, build_grid, require
from .config import GameConfig
from .peek import PeekController

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    IDLE = "idle"
    AWAITING_FIRST = "awaiting_first"
    FIRST_REVEALED = "first_revealed"
    RESOLVING = "resolving"
    WON = "won"
    LOST = "lost"


TERMINAL = frozenset({Phase.WON, Phase.LOST})


class MatchSession:
    """
    All state of one round. Built at round start, thrown away on restart.

    Rep:
      - opened is None, or a face-up card on the board
      - 0 <= lives <= config.lives, 1 <= grace_tries <= config.grace_tries
      - seen holds positions revealed by a player flip, never by peek
    """

    def __init__(
        self,
        config: GameConfig,
        animator,
        hint_service=None,
        rng: Optional[random.Random] = None,
        on_finished: Optional[Callable[[Phase], None]] = None,
    ):
        self.config = config
        self.animator = animator
        self.hint_service = hint_service
        self.rng = rng or random.Random()
        self.on_finished = on_finished

        self.board: Board = build_grid(config.names, config.rows, config.cols, self.rng)
        for position in self.board.positions():
            animator.place(self.board.card_at(position), position)

        self.lives = config.lives
        self.grace_tries = config.grace_tries
        self.opened: Optional[Card] = None
        self.can_move = False
        self.is_peeking = False
        self.paused = False
        self.phase = Phase.IDLE
        self.seen: Set[int] = set()
        self.mounted = True

        self.peek = PeekController(self)
        self.hint_busy = False
        self.hint_position: Optional[int] = None
        self._hint_timer: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()

    # ---------- task bookkeeping ----------

    def spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("round task failed", exc_info=task.exception())

    async def settle(self) -> None:
        """Wait for every animation and delayed step scheduled so far."""
        while self._tasks:
            results = await asyncio.gather(*list(self._tasks), return_exceptions=True)
            for result in results:
                if isinstance(result, Exception) and not isinstance(result, asyncio.CancelledError):
                    raise result

    @property
    def pending(self) -> int:
        return len(self._tasks)

    # ---------- lifecycle ----------

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL

    @property
    def opened_position(self) -> Optional[int]:
        if self.opened is None:
            return None
        return self.board.position_of(self.opened)

    def start(self) -> None:
        """Let the player move once the start delay has passed."""
        if self.phase is not Phase.IDLE:
            return
        self.spawn(self._enable_after(self.config.start_delay))

    async def _enable_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        if not self.mounted or self.phase is not Phase.IDLE:
            return
        self.phase = Phase.AWAITING_FIRST
        self.can_move = True

    def teardown(self) -> None:
        if not self.mounted:
            return
        self.mounted = False
        self.can_move = False
        if self._hint_timer is not None:
            self._hint_timer.cancel()
            self._hint_timer = None
        for task in list(self._tasks):
            task.cancel()
        for card in self.board.cards():
            self.animator.destroy(card)
        logger.debug("round torn down with %d cards left", len(self.board))

    # ---------- selection ----------

    def accepts(self, card: Optional[Card]) -> bool:
        if not self.mounted or self.is_terminal:
            return False
        if not self.can_move or self.paused or self.is_peeking:
            return False
        if card is None or not self.board.contains(card):
            return False
        if card is self.opened or not card.face_down or card.is_flipping:
            return False
        return True

    def select(self, position: int) -> bool:
        return self.select_card(self.board.card_at(position))

    def select_card(self, card: Optional[Card]) -> bool:
        """Flip `card` as the first or second pick. False if the pick is not allowed now."""
        if not self.accepts(card):
            return False
        self.can_move = False
        self.phase = Phase.RESOLVING
        self.spawn(self._resolve(card))
        return True

    async def _resolve(self, card: Card) -> None:
        position = self.board.position_of(card)
        await card.flip(self.animator, allow_alternate_reveal=True)
        if not self.mounted:
            return
        self.seen.add(position)

        opened = self.opened
        if opened is None:
            self.opened = card
            self.phase = Phase.FIRST_REVEALED
            self.can_move = True
            return

        if opened.name == card.name:
            self._matched(opened, card)
        else:
            await self._mismatched(opened, card)

    def _matched(self, opened: Card, card: Card) -> None:
        logger.info("matched %s", card.name)
        self.animator.destroy(opened)
        self.animator.destroy(card)
        self.board.remove_pair(opened, card)
        self.opened = None
        self._clear_hint()
        self.phase = Phase.AWAITING_FIRST
        self.can_move = True
        if self.board.is_empty():
            self._finish(Phase.WON)

    async def _mismatched(self, opened: Card, card: Card) -> None:
        self.grace_tries -= 1
        if self.grace_tries <= 0:
            self.grace_tries = self.config.grace_tries
            self.lives -= 1
            require(self.lives >= 0, f"lives went negative ({self.lives})")
            self.animator.remove_heart(self.lives, self.config.heart_rise,
                                       self.config.heart_fade_duration)
            logger.info("mismatch %s/%s, life lost (%d left)", opened.name, card.name, self.lives)
        else:
            logger.info("mismatch %s/%s, %d grace tries left", opened.name, card.name, self.grace_tries)
        self.animator.shake(self.config.shake_duration, self.config.shake_intensity)

        await asyncio.sleep(self.config.mismatch_delay)
        if not self.mounted:
            return
        await asyncio.gather(card.flip(self.animator), opened.flip(self.animator))
        if not self.mounted:
            return

        self.opened = None
        self._clear_hint()
        self.phase = Phase.AWAITING_FIRST
        self.can_move = True
        if self.lives <= 0:
            self._finish(Phase.LOST)

    def _finish(self, phase: Phase) -> None:
        self.phase = phase
        self.can_move = False
        logger.info("round %s", phase.value)
        if self.on_finished is not None:
            self.on_finished(phase)

    # ---------- peek ----------

    def toggle_peek(self) -> bool:
        return self.peek.toggle()

    # ---------- hints ----------

    async def request_hint(self) -> Optional[int]:
        """
        Ask the hint service where the partner of the open card is.

        Returns the highlighted position, or None when no hint can be given
        right now (nothing open, a hint already running, round not interactive).
        """
        if self.hint_service is None or self.hint_busy or not self.mounted:
            return None
        if self.opened is None or self.is_terminal or self.paused or self.is_peeking:
            return None

        opened = self.opened
        opened_position = self.board.position_of(opened)
        self.hint_busy = True
        self._clear_hint()
        try:
            suggestion = await self.hint_service.request_hint(
                opened.name, self.board, frozenset(self.seen), opened_position
            )
        finally:
            self.hint_busy = False

        if not self.mounted:
            return None
        if self.opened is not opened or suggestion is None:
            logger.debug("hint for %s dropped, turn moved on", opened.name)
            return None
        self._show_hint(suggestion)
        return suggestion

    def _show_hint(self, position: int) -> None:
        duration = self.config.hint_highlight_duration
        self.hint_position = position
        self.animator.highlight(position, duration)
        loop = asyncio.get_running_loop()
        self._hint_timer = loop.call_later(duration, self._clear_hint)

    def _clear_hint(self) -> None:
        if self._hint_timer is not None:
            self._hint_timer.cancel()
            self._hint_timer = None
        if self.hint_position is not None:
            self.hint_position = None
            self.animator.clear_highlight()

    # ---------- view ----------

    def snapshot(self) -> dict:
        cells = []
        for position in range(self.board.size):
            card = self.board.card_at(position)
            if card is None:
                cells.append({"position": position, "state": "none"})
            elif card.face_down:
                cells.append({"position": position, "state": "down"})
            else:
                cells.append({"position": position, "state": "up", "name": card.name})
        return {
            "phase": self.phase.value,
            "lives": self.lives,
            "grace_tries": self.grace_tries,
            "can_move": self.can_move,
            "is_peeking": self.is_peeking,
            "paused": self.paused,
            "opened": self.opened_position,
            "seen": sorted(self.seen),
            "hint": self.hint_position,
            "hint_busy": self.hint_busy,
            "board": cells,
        }

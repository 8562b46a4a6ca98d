# vault_match/peek.py
from __future__ import annotations

import asyncio
import logging
from typing import List

from .board import require

logger = logging.getLogger(__name__)


class PeekController:
    """
    Reveal-all / hide-all toggle for a round.

    A toggle starts a batch of flips; the next toggle is refused until every
    flip of the batch has reported back, in whatever order they finish.
    """

    def __init__(self, session):
        self.session = session
        self.batch_in_flight = False
        self.batch_size = 0
        self.completed = 0

    def toggle(self) -> bool:
        s = self.session
        if not s.mounted or s.is_terminal:
            return False
        if not s.can_move or s.paused or self.batch_in_flight:
            return False

        s.is_peeking = not s.is_peeking
        board = s.board
        if s.is_peeking:
            logger.info("peek on")
            # a card left open by the player may show a decoy face
            for card in board.face_up_cards():
                s.animator.reveal(card)
            batch = board.face_down_cards()
        else:
            logger.info("peek off")
            batch = [c for c in board.face_up_cards() if c is not s.opened]

        self.batch_size = len(batch)
        self.completed = 0
        if not batch:
            return True
        self.batch_in_flight = True
        s.spawn(self._run(batch))
        return True

    async def _run(self, batch: List) -> None:
        try:
            await asyncio.gather(*(self._flip_one(card) for card in batch))
        finally:
            self.batch_in_flight = False
        require(self.completed == self.batch_size,
                f"peek batch finished {self.completed} of {self.batch_size} flips")

    async def _flip_one(self, card) -> None:
        await card.flip(self.session.animator, allow_alternate_reveal=False)
        self.completed += 1

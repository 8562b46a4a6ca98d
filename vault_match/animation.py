# vault_match/animation.py
"""
Presentation collaborators.

The core only awaits completion of these calls; it never looks at how a
flip or a dialogue box is drawn. HeadlessAnimator and HeadlessPresenter are
complete in-memory implementations used by the HTTP server and the tests.
"""

from __future__ import annotations

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

BACK = "card-back"

# newest events kept by HeadlessAnimator
EVENT_LOG_SIZE = 1000


class Animator(ABC):
    """Card and board effects. Only flip() is awaited by the core."""

    @abstractmethod
    def place(self, card, position: int) -> None:
        raise NotImplementedError

    @abstractmethod
    async def flip(self, card, allow_alternate_reveal: bool = False) -> None:
        """Animate `card` towards its current `face_down` orientation."""
        raise NotImplementedError

    @abstractmethod
    def reveal(self, card) -> None:
        """Snap a face-up card to its true face, no animation."""
        raise NotImplementedError

    @abstractmethod
    def hide(self, card) -> None:
        """Snap a card to its back, no animation."""
        raise NotImplementedError

    @abstractmethod
    def destroy(self, card) -> None:
        raise NotImplementedError

    @abstractmethod
    def highlight(self, position: int, duration: float) -> None:
        raise NotImplementedError

    @abstractmethod
    def clear_highlight(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def shake(self, duration: float, intensity: float) -> None:
        raise NotImplementedError

    @abstractmethod
    def remove_heart(self, index: int, rise: int, duration: float) -> None:
        raise NotImplementedError

    @abstractmethod
    def hit_test(self, x: float, y: float):
        raise NotImplementedError


class DialoguePresenter(ABC):
    @abstractmethod
    async def show_line(self, line, presentation) -> None:
        raise NotImplementedError

    @abstractmethod
    async def dismiss(self) -> None:
        raise NotImplementedError


@dataclass
class Rect:
    x: float
    y: float
    w: float
    h: float

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px < self.x + self.w and self.y <= py < self.y + self.h


class HeadlessAnimator(Animator):
    """
    Animator without a screen.

    Rep:
      - shown[card_id] is the face currently displayed for each placed card
        (BACK, the true name, or a decoy name after a hallucinated reveal)
      - regions[card_id] is the hit-region of each card still on the table
    Every call is appended to `events` as a tuple, oldest first; only the
    newest `event_log_size` are kept.
    """

    def __init__(
        self,
        cols: int = 8,
        card_size: Tuple[int, int] = (48, 72),
        padding: int = 10,
        flip_duration: float = 0.0,
        names: Sequence[str] = (),
        hallucination_chance: float = 0.0,
        rng: Optional[random.Random] = None,
        event_log_size: int = EVENT_LOG_SIZE,
    ):
        self.cols = cols
        self.card_w, self.card_h = card_size
        self.padding = padding
        self.flip_duration = flip_duration
        self.names = list(names)
        self.hallucination_chance = hallucination_chance
        self.rng = rng or random.Random()

        self.cards: Dict[int, object] = {}
        self.shown: Dict[int, str] = {}
        self.regions: Dict[int, Rect] = {}
        self.highlighted: Optional[int] = None
        self.hearts_removed: List[int] = []
        self.events: Deque[tuple] = deque(maxlen=event_log_size)

    @classmethod
    def for_config(cls, config, flip_duration: float = 0.0, rng=None) -> "HeadlessAnimator":
        return cls(
            cols=config.cols,
            flip_duration=flip_duration,
            names=config.names,
            hallucination_chance=config.hallucination_chance,
            rng=rng,
        )

    def region_for(self, position: int) -> Rect:
        row, col = divmod(position, self.cols)
        return Rect(
            x=col * (self.card_w + self.padding),
            y=row * (self.card_h + self.padding),
            w=self.card_w,
            h=self.card_h,
        )

    def center_of(self, position: int) -> Tuple[float, float]:
        r = self.region_for(position)
        return (r.x + r.w / 2, r.y + r.h / 2)

    def place(self, card, position: int) -> None:
        self.cards[card.card_id] = card
        self.regions[card.card_id] = self.region_for(position)
        self.hide(card)
        self.events.append(("place", card.card_id, position))

    async def flip(self, card, allow_alternate_reveal: bool = False) -> None:
        self.events.append(("flip", card.card_id, allow_alternate_reveal))
        if self.flip_duration > 0:
            await asyncio.sleep(self.flip_duration)
        else:
            # still yield so callers observe the in-flight state
            await asyncio.sleep(0)
        if card.card_id not in self.shown:
            return
        if card.face_down:
            self.shown[card.card_id] = BACK
        elif allow_alternate_reveal and self._hallucinates():
            decoys = [n for n in self.names if n != card.name]
            self.shown[card.card_id] = self.rng.choice(decoys) if decoys else card.name
            logger.debug("card %s revealed as decoy %s", card.card_id, self.shown[card.card_id])
        else:
            self.shown[card.card_id] = card.name

    def _hallucinates(self) -> bool:
        return self.hallucination_chance > 0 and self.rng.random() < self.hallucination_chance

    def reveal(self, card) -> None:
        if card.card_id in self.shown:
            self.shown[card.card_id] = card.name
            self.events.append(("reveal", card.card_id))

    def hide(self, card) -> None:
        if card.card_id in self.cards:
            self.shown[card.card_id] = BACK
            self.events.append(("hide", card.card_id))

    def destroy(self, card) -> None:
        if card.card_id not in self.cards:
            return
        del self.cards[card.card_id]
        self.shown.pop(card.card_id, None)
        self.regions.pop(card.card_id, None)
        self.events.append(("destroy", card.card_id))

    def highlight(self, position: int, duration: float) -> None:
        self.highlighted = position
        self.events.append(("highlight", position, duration))

    def clear_highlight(self) -> None:
        if self.highlighted is not None:
            self.events.append(("clear_highlight", self.highlighted))
        self.highlighted = None

    def shake(self, duration: float, intensity: float) -> None:
        self.events.append(("shake", duration, intensity))

    def remove_heart(self, index: int, rise: int, duration: float) -> None:
        self.hearts_removed.append(index)
        self.events.append(("remove_heart", index))

    def hit_test(self, x: float, y: float):
        for card_id, region in self.regions.items():
            if region.contains(x, y):
                return self.cards[card_id]
        return None

    def face_of(self, card) -> Optional[str]:
        return self.shown.get(card.card_id)

    def count(self, kind: str) -> int:
        return sum(1 for e in self.events if e[0] == kind)


class HeadlessPresenter(DialoguePresenter):
    """Records each line shown; transitions take `duration` seconds."""

    def __init__(self, duration: float = 0.0):
        self.duration = duration
        self.shown: List[tuple] = []
        self.current = None
        self.dismissed = 0

    async def show_line(self, line, presentation) -> None:
        await asyncio.sleep(self.duration)
        self.current = line
        self.shown.append((line, presentation))

    async def dismiss(self) -> None:
        await asyncio.sleep(self.duration)
        self.current = None
        self.dismissed += 1

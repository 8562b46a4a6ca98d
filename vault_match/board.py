# vault_match/board.py
from __future__ import annotations

import itertools
import logging
import random
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from .errors import BoardInvariantError

logger = logging.getLogger(__name__)

_card_ids = itertools.count(1)


@dataclass(eq=False)
class Card:
    """
    One card on the table. Compared by identity.

    `face_down` is the orientation the card is in, or is turning towards
    while `is_flipping` is set.
    """

    name: str
    card_id: int = field(default_factory=lambda: next(_card_ids))
    face_down: bool = True
    is_flipping: bool = False
    destroyed: bool = False

    async def flip(self, animator, allow_alternate_reveal: bool = False) -> bool:
        """Turn the card over. Returns False if it was already turning."""
        if self.is_flipping or self.destroyed:
            return False
        self.is_flipping = True
        self.face_down = not self.face_down
        try:
            await animator.flip(self, allow_alternate_reveal)
        finally:
            self.is_flipping = False
        return True

    def __repr__(self) -> str:
        side = "down" if self.face_down else "up"
        return f"Card({self.name!r}, id={self.card_id}, {side})"


class Board:
    """
    Grid of cards addressed by integer position.

    Rep:
      - _cards maps position -> live Card, _positions maps card_id -> position
      - the two maps are exact inverses of each other
      - every live name is held by exactly two cards
    Matched pairs leave both maps together through remove_pair().
    """

    def __init__(self, cards: Sequence[Card], rows: int, cols: int):
        if rows <= 0 or cols <= 0:
            raise ValueError("rows/cols must be positive")
        if len(cards) != rows * cols:
            raise ValueError("cards length must equal rows*cols")

        self._rows = rows
        self._cols = cols
        self._cards: Dict[int, Card] = {}
        self._positions: Dict[int, int] = {}
        for position, card in enumerate(cards):
            self._cards[position] = card
            self._positions[card.card_id] = position

        self._check_rep()

    def _check_rep(self) -> None:
        require(len(self._cards) == len(self._positions), "position/card maps differ in size")
        counts: Dict[str, int] = {}
        for position, card in self._cards.items():
            require(0 <= position < self.size, f"position {position} outside the grid")
            require(not card.destroyed, f"position {position} holds destroyed {card!r}")
            require(self._positions.get(card.card_id) == position,
                     f"{card!r} does not map back to position {position}")
            counts[card.name] = counts.get(card.name, 0) + 1
        for name, n in counts.items():
            require(n == 2, f"name {name!r} held by {n} cards")

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def cols(self) -> int:
        return self._cols

    @property
    def size(self) -> int:
        return self._rows * self._cols

    def __len__(self) -> int:
        return len(self._cards)

    def is_empty(self) -> bool:
        return not self._cards

    def card_at(self, position: int) -> Optional[Card]:
        return self._cards.get(position)

    def position_of(self, card: Card) -> int:
        position = self._positions.get(card.card_id)
        if position is None:
            _fail(f"{card!r} has no position on the board")
        return position

    def contains(self, card: Optional[Card]) -> bool:
        return card is not None and self._cards.get(self._positions.get(card.card_id, -1)) is card

    def positions(self) -> List[int]:
        return sorted(self._cards)

    def cards(self) -> List[Card]:
        return [self._cards[p] for p in self.positions()]

    def face_down_cards(self) -> List[Card]:
        return [c for c in self.cards() if c.face_down]

    def face_up_cards(self) -> List[Card]:
        return [c for c in self.cards() if not c.face_down]

    def remove_pair(self, first: Card, second: Card) -> None:
        """Take a matched pair off the board. Both or neither."""
        if first is second:
            _fail(f"cannot match {first!r} with itself")
        if first.name != second.name:
            _fail(f"{first!r} and {second!r} are not a pair")
        p1 = self.position_of(first)
        p2 = self.position_of(second)
        if self._cards.get(p1) is not first or self._cards.get(p2) is not second:
            _fail("pair positions point at other cards")

        del self._cards[p1]
        del self._cards[p2]
        del self._positions[first.card_id]
        del self._positions[second.card_id]
        first.destroyed = True
        second.destroyed = True
        self._check_rep()

    def card_at_point(self, x: float, y: float, animator) -> Optional[Card]:
        """Hit-test through the animator; cards already taken off the board never match."""
        card = animator.hit_test(x, y)
        return card if self.contains(card) else None

    def __str__(self) -> str:
        rows = []
        for r in range(self._rows):
            cells = []
            for c in range(self._cols):
                card = self._cards.get(r * self._cols + c)
                if card is None:
                    cells.append("none")
                elif card.face_down:
                    cells.append("down")
                else:
                    cells.append(f"up {card.name}")
            rows.append(" | ".join(cells))
        return "\n".join(rows)


def build_grid(names: Iterable[str], rows: int, cols: int,
               rng: Optional[random.Random] = None) -> Board:
    """Duplicate every name, shuffle, and lay one fresh face-down Card per slot."""
    names = list(dict.fromkeys(names))
    deck = names + names
    if len(deck) != rows * cols:
        raise ValueError("grid size must equal twice the number of names")
    (rng or random).shuffle(deck)
    return Board([Card(name) for name in deck], rows, cols)


def require(condition: bool, message: str) -> None:
    if not condition:
        _fail(message)


def _fail(message: str):
    logger.error("board invariant violated: %s", message)
    raise BoardInvariantError(message)

# vault_match/hints.py
"""
Hint service.

The board is described to an outside oracle line by line; the oracle answers
with one bracketed position such as "[7]". Whatever goes wrong on the way
(timeout, transport error, junk reply, a position that is not playable) the
player still gets a plausible position picked at random.
"""

from __future__ import annotations

import asyncio
import logging
import random
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AbstractSet, List, Optional

import requests

from .errors import HintOracleError

logger = logging.getLogger(__name__)

MATCHED = "matched (ignore)"
NOT_CHECKED = "not_checked"

_BRACKETED_INT = re.compile(r"\[\s*(\d+)\s*\]")


@dataclass(frozen=True)
class HintRequest:
    current_card: str
    board_encoding: str
    hallucination_roll: int

    def to_json(self) -> dict:
        return {
            "currentCard": self.current_card,
            "boardEncoding": self.board_encoding,
            "hallucinationRoll": self.hallucination_roll,
        }


def encode_board(board, seen: AbstractSet[int], opened_position: Optional[int]) -> str:
    lines = []
    for position in range(board.size):
        card = board.card_at(position)
        if card is None or position == opened_position:
            label = MATCHED
        elif position in seen:
            label = card.name
        else:
            label = NOT_CHECKED
        lines.append(f"{position}: {label}")
    return "\n".join(lines)


def valid_positions(board, opened_position: Optional[int]) -> List[int]:
    return [p for p in board.positions() if p != opened_position]


def parse_suggestion(reply: Optional[str]) -> Optional[int]:
    """The single bracketed integer in `reply`, or None if there is not exactly one."""
    if not reply:
        return None
    found = _BRACKETED_INT.findall(reply)
    if len(found) != 1:
        return None
    return int(found[0])


class HintOracle(ABC):
    """Blocking call to whatever answers hint requests."""

    @abstractmethod
    def ask(self, request: HintRequest) -> str:
        raise NotImplementedError


class HttpHintOracle(HintOracle):
    """Posts the request as JSON; expects {"success": bool, "suggestion": str}."""

    def __init__(self, url: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.http = session or requests.Session()

    def ask(self, request: HintRequest) -> str:
        try:
            r = self.http.post(self.url, json=request.to_json(), timeout=self.timeout)
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            raise HintOracleError(f"hint request failed: {e}") from e

        if not isinstance(data, dict) or not data.get("success"):
            raise HintOracleError(f"hint oracle refused: {data!r}")
        suggestion = data.get("suggestion")
        if not isinstance(suggestion, str):
            raise HintOracleError("hint oracle reply has no suggestion")
        return suggestion


class HintService:
    def __init__(self, oracle: HintOracle, config, rng: Optional[random.Random] = None):
        self.oracle = oracle
        self.config = config
        self.rng = rng or random.Random()
        self.fallbacks = 0

    def roll(self) -> int:
        return self.rng.randint(self.config.hint_roll_min, self.config.hint_roll_max)

    async def request_hint(
        self,
        opened_name: str,
        board,
        seen: AbstractSet[int],
        opened_position: Optional[int],
    ) -> Optional[int]:
        """
        Suggest a position to flip next.

        Always a live position other than the open card, or None when the
        board has no such position.
        """
        candidates = valid_positions(board, opened_position)
        if not candidates:
            return None

        request = HintRequest(
            current_card=opened_name,
            board_encoding=encode_board(board, seen, opened_position),
            hallucination_roll=self.roll(),
        )
        reply = await self._ask(request)
        suggestion = parse_suggestion(reply)
        if suggestion in candidates:
            logger.info("hint for %s (roll %d): %d", opened_name, request.hallucination_roll, suggestion)
            return suggestion

        self.fallbacks += 1
        choice = self.rng.choice(candidates)
        logger.warning("unusable hint reply %r, falling back to %d", reply, choice)
        return choice

    async def _ask(self, request: HintRequest) -> Optional[str]:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.oracle.ask, request),
                timeout=self.config.hint_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("hint oracle timed out after %.1fs", self.config.hint_timeout)
        except HintOracleError as e:
            logger.warning("%s", e)
        except Exception:
            logger.exception("hint oracle crashed")
        return None

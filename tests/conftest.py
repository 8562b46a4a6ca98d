# tests/conftest.py
import random
import time

import pytest

from vault_match.animation import HeadlessAnimator
from vault_match.config import GameConfig
from vault_match.engine import MatchSession
from vault_match.hints import HintOracle


class ScriptedOracle(HintOracle):
    """Answers every hint request with the same reply (or error), optionally slowly."""

    def __init__(self, reply="[0]", error=None, delay=0.0):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.requests = []

    def ask(self, request):
        self.requests.append(request)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


def positions_by_name(board):
    by_name = {}
    for p in board.positions():
        by_name.setdefault(board.card_at(p).name, []).append(p)
    return by_name


def mismatched_positions(board):
    """Two positions holding different names."""
    pairs = list(positions_by_name(board).values())
    return pairs[0][0], pairs[1][0]


async def pick(session, *positions):
    for p in positions:
        assert session.select(p), f"selection of {p} refused"
        await session.settle()


@pytest.fixture
def config():
    return GameConfig().instant()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def animator(config, rng):
    return HeadlessAnimator.for_config(config, rng=rng)


@pytest.fixture
def make_session(config, animator, rng):
    finished = []

    def _make(cfg=None, **kwargs):
        cfg = cfg or config
        s = MatchSession(cfg, animator, rng=rng, on_finished=finished.append, **kwargs)
        s.finished = finished
        return s

    return _make

# tests/test_board.py
import asyncio
import random
from collections import Counter

import pytest

from vault_match.animation import Animator, HeadlessAnimator
from vault_match.board import Board, Card, build_grid
from vault_match.config import DEFAULT_NAMES
from vault_match.errors import BoardInvariantError

from tests.conftest import positions_by_name


def test_every_name_appears_exactly_twice():
    for seed in range(20):
        b = build_grid(DEFAULT_NAMES, 2, 8, random.Random(seed))
        counts = Counter(c.name for c in b.cards())
        assert set(counts) == set(DEFAULT_NAMES)
        assert all(n == 2 for n in counts.values())
        assert b.positions() == list(range(16))


def test_cards_start_face_down_and_not_flipping():
    b = build_grid(["A", "B"], 2, 2)
    assert all(c.face_down and not c.is_flipping for c in b.cards())


def test_separate_grids_share_no_cards():
    b1 = build_grid(["A", "B"], 1, 4)
    b2 = build_grid(["A", "B"], 1, 4)
    ids1 = {c.card_id for c in b1.cards()}
    ids2 = {c.card_id for c in b2.cards()}
    assert not ids1 & ids2
    assert not b2.contains(b1.card_at(0))


def test_grid_size_must_fit_names():
    with pytest.raises(ValueError):
        build_grid(["A", "B"], 2, 3)


def test_remove_pair_clears_both_maps():
    b = Board([Card("A"), Card("B"), Card("A"), Card("B")], 2, 2)
    a1, a2 = b.card_at(0), b.card_at(2)

    b.remove_pair(a1, a2)

    assert b.card_at(0) is None and b.card_at(2) is None
    assert b.positions() == [1, 3]
    assert a1.destroyed and a2.destroyed
    with pytest.raises(BoardInvariantError):
        b.position_of(a1)


def test_remove_pair_rejects_non_pairs_and_leaves_board_untouched():
    b = Board([Card("A"), Card("B"), Card("A"), Card("B")], 2, 2)
    with pytest.raises(BoardInvariantError):
        b.remove_pair(b.card_at(0), b.card_at(1))
    with pytest.raises(BoardInvariantError):
        b.remove_pair(b.card_at(0), b.card_at(0))
    assert len(b) == 4


def test_cannot_remove_a_pair_twice():
    b = Board([Card("X"), Card("X")], 1, 2)
    x1, x2 = b.card_at(0), b.card_at(1)
    b.remove_pair(x1, x2)
    assert b.is_empty()
    with pytest.raises(BoardInvariantError):
        b.remove_pair(x1, x2)


def test_unbalanced_board_is_refused():
    with pytest.raises(BoardInvariantError):
        Board([Card("A"), Card("A"), Card("A"), Card("B")], 2, 2)


def test_card_at_point_uses_animator_regions():
    b = build_grid(["A", "B"], 1, 4, random.Random(3))
    animator = HeadlessAnimator(cols=4)
    for p in b.positions():
        animator.place(b.card_at(p), p)

    x, y = animator.center_of(2)
    assert b.card_at_point(x, y, animator) is b.card_at(2)
    assert b.card_at_point(-5, -5, animator) is None


def test_card_at_point_ignores_removed_cards():
    b = build_grid(["A", "B"], 1, 4, random.Random(3))
    animator = HeadlessAnimator(cols=4)
    for p in b.positions():
        animator.place(b.card_at(p), p)
    first, second = positions_by_name(b)["A"]
    x, y = animator.center_of(first)
    # removed from the board while its destroy effect is still on screen
    b.remove_pair(b.card_at(first), b.card_at(second))
    assert b.card_at_point(x, y, animator) is None


@pytest.mark.asyncio
async def test_flip_toggles_face_and_refuses_while_turning():
    animator = HeadlessAnimator(cols=2, flip_duration=0.01)
    card = Card("A")
    animator.place(card, 0)

    task = asyncio.ensure_future(card.flip(animator))
    await asyncio.sleep(0)
    assert card.is_flipping and not card.face_down
    assert await card.flip(animator) is False
    assert await task is True
    assert not card.is_flipping
    assert animator.face_of(card) == "A"


def test_animator_event_log_is_bounded():
    animator = HeadlessAnimator(cols=4, event_log_size=4)
    cards = [Card("A") for _ in range(4)]
    for p, card in enumerate(cards):
        animator.place(card, p)
    assert len(animator.events) == 4
    assert animator.events[-1] == ("place", cards[-1].card_id, 3)
    assert animator.count("place") == 2


def test_incomplete_animator_cannot_be_built():
    class FlipOnly(Animator):
        async def flip(self, card, allow_alternate_reveal=False):
            pass

    with pytest.raises(TypeError):
        FlipOnly()

# tests/test_engine.py
import asyncio
import random
from dataclasses import replace

import pytest

from vault_match.engine import MatchSession, Phase
from vault_match.errors import BoardInvariantError

from tests.conftest import mismatched_positions, pick, positions_by_name


async def started(session):
    session.start()
    await session.settle()
    assert session.can_move
    return session


@pytest.mark.asyncio
async def test_no_moves_before_start(make_session):
    s = make_session()
    assert s.phase is Phase.IDLE
    assert s.select(0) is False
    await started(s)
    assert s.phase is Phase.AWAITING_FIRST


@pytest.mark.asyncio
async def test_first_pick_opens_card_and_marks_seen(make_session):
    s = await started(make_session())
    assert s.select(3)
    assert not s.can_move
    assert s.phase is Phase.RESOLVING
    await s.settle()

    assert s.opened is s.board.card_at(3)
    assert not s.opened.face_down
    assert s.seen == {3}
    assert s.can_move
    assert s.phase is Phase.FIRST_REVEALED


@pytest.mark.asyncio
async def test_gate_refuses_invalid_picks(make_session):
    s = await started(make_session())
    await pick(s, 0)

    assert s.select(0) is False  # the open card itself
    assert s.select(99) is False  # no such position

    s.paused = True
    assert s.select(1) is False
    s.paused = False

    s.is_peeking = True
    assert s.select(1) is False
    s.is_peeking = False

    s.board.card_at(1).face_down = False
    assert s.select(1) is False


@pytest.mark.asyncio
async def test_second_pick_is_locked_out_while_first_turns(config, animator, rng):
    animator.flip_duration = 0.02
    s = MatchSession(config, animator, rng=rng)
    await started(s)

    assert s.select(0)
    assert s.select(1) is False
    await s.settle()
    assert s.select(1)
    await s.settle()


@pytest.mark.asyncio
async def test_match_removes_pair(make_session):
    s = await started(make_session())
    a, b = positions_by_name(s.board)["card-0"]

    await pick(s, a, b)

    assert s.board.card_at(a) is None and s.board.card_at(b) is None
    assert s.opened is None
    assert s.can_move
    assert s.lives == 3 and s.grace_tries == 2
    assert s.animator.count("destroy") == 2
    assert s.phase is Phase.AWAITING_FIRST
    assert s.select(a) is False


@pytest.mark.asyncio
async def test_mismatch_flips_both_back(make_session):
    s = await started(make_session())
    a, b = mismatched_positions(s.board)

    await pick(s, a, b)

    assert s.board.card_at(a).face_down and s.board.card_at(b).face_down
    assert s.opened is None
    assert s.can_move
    assert s.seen == {a, b}
    assert s.animator.count("shake") == 1


@pytest.mark.asyncio
async def test_grace_tries_absorb_mismatches_before_a_life(make_session):
    s = await started(make_session())
    a, b = mismatched_positions(s.board)

    await pick(s, a, b)
    assert (s.lives, s.grace_tries) == (3, 1)
    await pick(s, a, b)
    assert (s.lives, s.grace_tries) == (2, 2)
    await pick(s, a, b)
    assert (s.lives, s.grace_tries) == (2, 1)

    assert s.animator.hearts_removed == [2]
    assert s.phase is Phase.AWAITING_FIRST


@pytest.mark.asyncio
async def test_clearing_the_board_wins(make_session):
    s = await started(make_session())
    for name, (a, b) in positions_by_name(s.board).items():
        await pick(s, a, b)

    assert s.board.is_empty()
    assert s.phase is Phase.WON
    assert s.lives == 3
    assert s.finished == [Phase.WON]
    assert not s.can_move


@pytest.mark.asyncio
async def test_running_out_of_lives_loses(make_session, config):
    s = await started(make_session(replace(config, lives=2, grace_tries=1)))
    a, b = mismatched_positions(s.board)

    await pick(s, a, b)
    assert s.phase is Phase.AWAITING_FIRST
    await pick(s, a, b)

    assert s.lives == 0
    assert s.phase is Phase.LOST
    assert s.finished == [Phase.LOST]


@pytest.mark.asyncio
async def test_terminal_state_is_sticky(make_session, config):
    s = await started(make_session(replace(config, lives=1, grace_tries=1)))
    a, b = mismatched_positions(s.board)
    await pick(s, a, b)
    assert s.phase is Phase.LOST

    s.can_move = True
    assert s.select(a) is False
    assert s.toggle_peek() is False
    assert s.finished == [Phase.LOST]


@pytest.mark.asyncio
async def test_no_third_flip_during_mismatch_delay(make_session, config):
    s = await started(make_session(replace(config, mismatch_delay=0.05)))
    a, b = mismatched_positions(s.board)
    c = next(p for p in s.board.positions() if p not in (a, b))

    await pick(s, a)
    assert s.select(b)
    await asyncio.sleep(0.02)
    # both cards are up and waiting to turn back
    assert not s.board.card_at(a).face_down and not s.board.card_at(b).face_down
    assert s.select(c) is False
    assert s.toggle_peek() is False
    await s.settle()
    assert s.select(c)
    await s.settle()


@pytest.mark.asyncio
async def test_lives_never_increase_or_go_negative(make_session, config):
    s = await started(make_session(replace(config, lives=4)))
    r = random.Random(99)
    history = [s.lives]
    for _ in range(300):
        if s.is_terminal:
            break
        if s.select(r.randrange(16)):
            await s.settle()
        history.append(s.lives)

    assert all(x >= y for x, y in zip(history, history[1:]))
    assert min(history) >= 0
    for position in s.board.positions():
        assert s.board.position_of(s.board.card_at(position)) == position


@pytest.mark.asyncio
async def test_teardown_stops_pending_work(make_session, config):
    s = await started(make_session(replace(config, mismatch_delay=0.05)))
    a, b = mismatched_positions(s.board)
    await pick(s, a)
    assert s.select(b)
    await asyncio.sleep(0)

    s.teardown()
    await s.settle()

    assert not s.mounted
    assert s.select(a) is False
    assert s.animator.count("destroy") == 16
    assert s.finished == []


@pytest.mark.asyncio
async def test_snapshot_shows_only_face_up_names(make_session):
    s = await started(make_session())
    await pick(s, 5)
    snap = s.snapshot()
    assert snap["opened"] == 5
    assert snap["board"][5]["name"] == s.board.card_at(5).name
    assert "name" not in snap["board"][0]
    assert snap["phase"] == "first_revealed"


@pytest.mark.asyncio
async def test_life_loss_below_zero_is_an_invariant_error(make_session):
    s = await started(make_session())
    s.lives = 0
    s.grace_tries = 1
    a, b = mismatched_positions(s.board)
    assert s.select(a)
    await s.settle()
    assert s.select(b)
    with pytest.raises(BoardInvariantError):
        await s.settle()

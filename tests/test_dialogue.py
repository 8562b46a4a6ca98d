# tests/test_dialogue.py
import pytest

from vault_match.animation import HeadlessPresenter
from vault_match.dialogue import (
    DialogueLine,
    DialogueSequencer,
    Layout,
    Speaker,
    presentation_for,
)
from vault_match.scripts import VAULT_FAILURE, VAULT_INTRO
from vault_match.signals import Signal, SignalBus

LINES = (
    DialogueLine(Speaker.NARRATOR, "one"),
    DialogueLine(Speaker.USER, "two"),
    DialogueLine(Speaker.SIDEKICK, "three"),
)


def make(lines=LINES, duration=0.0):
    bus = SignalBus()
    done = []
    bus.on(Signal.DIALOGUE_COMPLETE, lambda: done.append(True))
    presenter = HeadlessPresenter(duration)
    return DialogueSequencer(lines, presenter, bus), presenter, done


def test_every_speaker_has_a_presentation():
    for speaker in Speaker:
        assert presentation_for(speaker).layout in Layout
    assert presentation_for(Speaker.USER).layout is Layout.LEFT
    assert presentation_for(Speaker.SIDEKICK).layout is Layout.RIGHT
    assert presentation_for(Speaker.ENEMY_AWAKE).layout is Layout.RIGHT
    assert presentation_for(Speaker.NARRATOR).layout is Layout.CENTER
    assert presentation_for(Speaker.NARRATOR).portrait is None


@pytest.mark.asyncio
async def test_n_advances_finish_a_script_of_n_lines():
    seq, presenter, done = make()
    seq.start()
    await seq.wait()
    assert seq.index == 0 and presenter.current is LINES[0]

    for i in range(len(LINES)):
        assert not seq.finished
        assert seq.advance()
        await seq.wait()

    assert seq.finished
    assert done == [True]
    assert [line for line, _ in presenter.shown] == list(LINES)
    assert presenter.dismissed == 1
    assert not seq.listening


@pytest.mark.asyncio
async def test_completion_fires_once():
    seq, _, done = make()
    seq.start()
    await seq.wait()
    for _ in range(len(LINES)):
        seq.advance()
        await seq.wait()
    assert seq.advance() is False
    seq.start()
    await seq.wait()
    assert done == [True]


@pytest.mark.asyncio
async def test_advance_during_transition_is_dropped():
    seq, presenter, _ = make(duration=0.02)
    seq.start()
    assert seq.advance() is False
    await seq.wait()

    assert seq.advance()
    assert seq.advance() is False
    assert seq.advance() is False
    await seq.wait()
    assert seq.index == 1
    assert presenter.current is LINES[1]


@pytest.mark.asyncio
async def test_advance_before_start_is_ignored():
    seq, _, done = make()
    assert seq.advance() is False
    assert seq.index == 0 and done == []


@pytest.mark.asyncio
async def test_empty_script_completes_right_away():
    seq, presenter, done = make(lines=())
    seq.start()
    await seq.wait()
    assert seq.finished and done == [True]
    assert presenter.shown == []


@pytest.mark.asyncio
async def test_second_script_starts_fresh():
    bus = SignalBus()
    presenter = HeadlessPresenter()
    first = DialogueSequencer(VAULT_INTRO[:2], presenter, bus)
    first.start()
    await first.wait()
    first.advance()
    await first.wait()

    second = DialogueSequencer(VAULT_FAILURE, presenter, bus)
    second.start()
    await second.wait()
    assert second.index == 0
    assert presenter.current is VAULT_FAILURE[0]


@pytest.mark.asyncio
async def test_teardown_drops_input_without_completing():
    seq, _, done = make()
    seq.start()
    await seq.wait()
    seq.teardown()
    assert seq.advance() is False
    assert done == []

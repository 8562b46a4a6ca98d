# vault_match/dialogue.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from .signals import Signal, SignalBus

logger = logging.getLogger(__name__)


class Layout(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    CENTER = "center"


class Speaker(str, Enum):
    USER = "User"
    SIDEKICK = "Sidekick"
    NARRATOR = "Narrator"
    ENEMY_ASLEEP = "EnemySleep_Level_1"
    ENEMY_AWAKE = "EnemyAwake_Level_1"


@dataclass(frozen=True)
class Presentation:
    layout: Layout
    box: str
    portrait: Optional[str] = None


_PRESENTATIONS = {
    Speaker.USER: Presentation(Layout.LEFT, "dialogue-box-left", "player"),
    Speaker.SIDEKICK: Presentation(Layout.RIGHT, "dialogue-box-right", "sidekick"),
    Speaker.NARRATOR: Presentation(Layout.CENTER, "dialogue-box-left"),
    Speaker.ENEMY_ASLEEP: Presentation(Layout.RIGHT, "dialogue-box-right", "card-enemy-sleep"),
    Speaker.ENEMY_AWAKE: Presentation(Layout.RIGHT, "dialogue-box-right", "card-enemy-awake"),
}
assert set(_PRESENTATIONS) == set(Speaker)


def presentation_for(speaker: Speaker) -> Presentation:
    return _PRESENTATIONS[speaker]


@dataclass(frozen=True)
class DialogueLine:
    speaker: Speaker
    text: str


class DialogueSequencer:
    """
    Plays one script, one line per advance.

    Line i is on screen after start() and i advances. The advance after the
    last line dismisses the box and emits DIALOGUE_COMPLETE, once. Advances
    that arrive while a line is still animating are dropped.
    """

    def __init__(self, lines: Sequence[DialogueLine], presenter, bus: SignalBus):
        self.lines = tuple(lines)
        self.presenter = presenter
        self.bus = bus
        self.index = 0
        self.started = False
        self.finished = False
        self.listening = False
        self.transitioning = False
        self._task: Optional[asyncio.Task] = None

    @property
    def current(self) -> Optional[DialogueLine]:
        if self.finished or self.index >= len(self.lines):
            return None
        return self.lines[self.index]

    def start(self) -> None:
        if self.started:
            return
        self.started = True
        self.listening = True
        self._run(self._show(0))

    def advance(self) -> bool:
        if not self.listening or self.transitioning:
            return False
        self._run(self._show(self.index + 1))
        return True

    def _run(self, coro) -> None:
        self.transitioning = True
        self._task = asyncio.get_running_loop().create_task(coro)

    async def _show(self, index: int) -> None:
        try:
            self.index = index
            if index >= len(self.lines):
                await self.presenter.dismiss()
                self._complete()
                return
            line = self.lines[index]
            await self.presenter.show_line(line, presentation_for(line.speaker))
        finally:
            self.transitioning = False

    def _complete(self) -> None:
        if self.finished:
            return
        self.teardown()
        self.finished = True
        logger.debug("dialogue finished after %d lines", len(self.lines))
        self.bus.emit(Signal.DIALOGUE_COMPLETE)

    def teardown(self) -> None:
        """Stop taking input. Does not emit anything."""
        self.listening = False
        if self._task is not None and self._task is not asyncio.current_task() and not self._task.done():
            self._task.cancel()

    async def wait(self) -> None:
        """Wait for the running line transition, if any."""
        task = self._task
        if task is not None and not task.done():
            try:
                await task
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise

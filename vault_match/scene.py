# vault_match/scene.py
from __future__ import annotations

import logging
import random
from typing import Callable, Optional, Sequence

from .animation import HeadlessAnimator, HeadlessPresenter
from .config import GameConfig
from .dialogue import DialogueLine, DialogueSequencer
from .engine import MatchSession, Phase
from .scripts import VAULT_FAILURE, VAULT_INTRO, VAULT_SUCCESS
from .signals import Signal, SignalBus

logger = logging.getLogger(__name__)


class VaultScene:
    """
    Host for the vault minigame: intro cutscene, one round, outro cutscene.

    Emits MATCH_GAME_WON or MATCH_GAME_LOST after the outro; leaving the
    scene is up to whoever listens.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        animator=None,
        presenter=None,
        hint_service=None,
        bus: Optional[SignalBus] = None,
        rng: Optional[random.Random] = None,
        intro: Sequence[DialogueLine] = VAULT_INTRO,
        success: Sequence[DialogueLine] = VAULT_SUCCESS,
        failure: Sequence[DialogueLine] = VAULT_FAILURE,
    ):
        self.config = config or GameConfig()
        self.rng = rng or random.Random()
        self.animator = animator or HeadlessAnimator.for_config(self.config, rng=self.rng)
        self.presenter = presenter or HeadlessPresenter()
        self.hint_service = hint_service
        self.bus = bus or SignalBus()
        self.scripts = {"intro": intro, "success": success, "failure": failure}

        self.session: Optional[MatchSession] = None
        self.dialogue: Optional[DialogueSequencer] = None
        self.paused = False
        self.mounted = True
        self.outcome: Optional[Phase] = None
        self.rounds = 0
        self._after_dialogue: Optional[Callable[[], None]] = None

    # ---------- flow ----------

    def start(self) -> None:
        self._play(self.scripts["intro"], self._start_round)

    def _play(self, lines, then: Callable[[], None]) -> None:
        self._drop_dialogue()

        def finished() -> None:
            self._after_dialogue = None
            self.dialogue = None
            if self.mounted:
                then()

        self._after_dialogue = finished
        self.bus.once(Signal.DIALOGUE_COMPLETE, finished)
        self.dialogue = DialogueSequencer(lines, self.presenter, self.bus)
        self.dialogue.start()

    def _drop_dialogue(self) -> None:
        if self.dialogue is not None:
            self.dialogue.teardown()
            self.dialogue = None
        if self._after_dialogue is not None:
            self.bus.off(Signal.DIALOGUE_COMPLETE, self._after_dialogue)
            self._after_dialogue = None

    def _start_round(self) -> None:
        self.outcome = None
        self.rounds += 1
        self.session = MatchSession(
            self.config,
            self.animator,
            hint_service=self.hint_service,
            rng=self.rng,
            on_finished=self._round_finished,
        )
        self.session.paused = self.paused
        self.session.start()
        logger.info("round %d started", self.rounds)

    def _round_finished(self, phase: Phase) -> None:
        if phase is Phase.WON:
            self._play(self.scripts["success"], lambda: self._announce(Phase.WON, Signal.MATCH_GAME_WON))
        else:
            self._play(self.scripts["failure"], lambda: self._announce(Phase.LOST, Signal.MATCH_GAME_LOST))

    def _announce(self, phase: Phase, signal: Signal) -> None:
        self.outcome = phase
        self.bus.emit(signal)

    def restart(self, replay_intro: bool = False) -> None:
        """Throw the round away and deal a fresh board."""
        self._drop_dialogue()
        if self.session is not None:
            self.session.teardown()
            self.session = None
        self.outcome = None
        if replay_intro:
            self.start()
        else:
            self._start_round()

    def teardown(self) -> None:
        if not self.mounted:
            return
        self.mounted = False
        self._drop_dialogue()
        if self.session is not None:
            self.session.teardown()
        logger.debug("scene torn down")

    async def settle(self) -> None:
        """Wait until no dialogue line or round animation is in progress."""
        while True:
            if self.dialogue is not None and self.dialogue.transitioning:
                await self.dialogue.wait()
            elif self.session is not None and self.session.pending:
                await self.session.settle()
            else:
                return

    # ---------- input ----------

    def click(self, x: float, y: float) -> bool:
        if not self.mounted:
            return False
        if self.dialogue is not None and self.dialogue.listening:
            return self.dialogue.advance()
        if self.session is None:
            return False
        return self.session.select_card(self.session.board.card_at_point(x, y, self.animator))

    def advance(self) -> bool:
        if not self.mounted or self.dialogue is None:
            return False
        return self.dialogue.advance()

    def select(self, position: int) -> bool:
        if not self.mounted or self.session is None or self._in_dialogue():
            return False
        return self.session.select(position)

    def toggle_peek(self) -> bool:
        if not self.mounted or self.session is None or self._in_dialogue():
            return False
        return self.session.toggle_peek()

    async def request_hint(self) -> Optional[int]:
        if not self.mounted or self.session is None or self._in_dialogue():
            return None
        return await self.session.request_hint()

    def toggle_pause(self) -> bool:
        self.paused = not self.paused
        if self.session is not None:
            self.session.paused = self.paused
        return self.paused

    def _in_dialogue(self) -> bool:
        return self.dialogue is not None and self.dialogue.listening

    # ---------- view ----------

    def snapshot(self) -> dict:
        state = {
            "round": self.rounds,
            "paused": self.paused,
            "outcome": self.outcome.value if self.outcome else None,
            "dialogue": None,
            "session": self.session.snapshot() if self.session else None,
        }
        line = self.dialogue.current if self.dialogue else None
        if line is not None:
            state["dialogue"] = {
                "index": self.dialogue.index,
                "speaker": line.speaker.value,
                "text": line.text,
            }
        return state

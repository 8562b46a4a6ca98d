# vault_match/training.py
"""
Data-training minigame: for each scene prompt pick the five words that fit it
best. A good pick raises calibration progress, a poor one lowers it.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import requests

from .animation import HeadlessPresenter
from .config import GameConfig
from .dialogue import DialogueSequencer
from .errors import TrainingDataError
from .scripts import TRAINING_FAILURE, TRAINING_INTRO, TRAINING_SUCCESS
from .signals import Signal, SignalBus

logger = logging.getLogger(__name__)

# progress value -> frame of the progress-bar sprite sheet
PROGRESS_FRAMES = {1: 12, 2: 6, 3: 13, 4: 0, 5: 7, 6: 14, 7: 1, 8: 8, 9: 15, 10: 2}

_FENCE = re.compile(r"```(?:json)?")

MIN_WEIGHT, MAX_WEIGHT = 1, 10


@dataclass(frozen=True)
class TrainingOption:
    word: str
    weight: int


@dataclass(frozen=True)
class TrainingPrompt:
    id: int
    prompt_text: str
    options: Tuple[TrainingOption, ...]


def parse_prompts(text: str) -> List[TrainingPrompt]:
    """Parse an oracle reply, with or without ``` fences, into prompts."""
    try:
        data = json.loads(_FENCE.sub("", text).strip())
    except (TypeError, ValueError) as e:
        raise TrainingDataError(f"prompt payload is not JSON: {e}") from e
    if not isinstance(data, dict) or not isinstance(data.get("prompts"), list):
        raise TrainingDataError("prompt payload has no 'prompts' list")

    prompts = []
    for i, raw in enumerate(data["prompts"], start=1):
        try:
            options = tuple(
                TrainingOption(word=str(o["word"]), weight=int(o["weight"]))
                for o in raw["options"]
            )
            prompts.append(TrainingPrompt(
                id=int(raw.get("id", i)),
                prompt_text=str(raw["prompt_text"]),
                options=options,
            ))
        except (KeyError, TypeError, ValueError) as e:
            raise TrainingDataError(f"malformed prompt #{i}: {e}") from e
        if not options:
            raise TrainingDataError(f"prompt #{i} has no options")
        for o in options:
            if not MIN_WEIGHT <= o.weight <= MAX_WEIGHT:
                raise TrainingDataError(
                    f"prompt #{i}: weight {o.weight} of {o.word!r} outside {MIN_WEIGHT}..{MAX_WEIGHT}")
    if not prompts:
        raise TrainingDataError("no prompts in payload")
    return prompts


class HttpPromptSource:
    """GETs {"success": true, "message": "<json prompts>"} from the content service."""

    def __init__(self, url: str, timeout: float = 30.0):
        self.url = url
        self.timeout = timeout

    def fetch(self) -> List[TrainingPrompt]:
        try:
            r = requests.get(self.url, timeout=self.timeout)
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            raise TrainingDataError(f"prompt request failed: {e}") from e
        message = data.get("message") if isinstance(data, dict) else None
        if not message:
            raise TrainingDataError("prompt service returned no message")
        return parse_prompts(message)


class TrainingRound:
    def __init__(self, prompts: Sequence[TrainingPrompt], config: GameConfig, bus: SignalBus):
        if not prompts:
            raise TrainingDataError("a training round needs at least one prompt")
        self.prompts = list(prompts)
        self.config = config
        self.bus = bus
        self.index = 0
        self.progress = config.training_start_progress
        self.selected: List[bool] = [False] * len(self.prompts[0].options)
        self.completed = False

    @property
    def prompt(self) -> Optional[TrainingPrompt]:
        if self.completed:
            return None
        return self.prompts[self.index]

    @property
    def selected_count(self) -> int:
        return sum(self.selected)

    @property
    def frame(self) -> int:
        return PROGRESS_FRAMES[self.progress]

    @property
    def won(self) -> bool:
        return self.progress >= self.config.training_win_progress

    def toggle_selection(self, index: int) -> bool:
        if self.completed or not 0 <= index < len(self.selected):
            return False
        if not self.selected[index] and self.selected_count >= self.config.training_max_selections:
            return False
        self.selected[index] = not self.selected[index]
        return True

    def score(self) -> float:
        options = self.prompts[self.index].options
        picked = sum(o.weight for o, s in zip(options, self.selected) if s)
        best = sorted((o.weight for o in options), reverse=True)[: self.config.training_max_selections]
        total = sum(best)
        if total <= 0:
            return 0.0
        return picked / total

    def submit(self) -> Optional[float]:
        """Score the current pick, move progress, go to the next prompt."""
        if self.completed:
            return None
        ratio = self.score()
        if ratio >= self.config.training_pass_ratio:
            self.progress = min(self.config.training_max_progress, self.progress + 1)
        else:
            self.progress = max(self.config.training_min_progress, self.progress - 1)
        logger.info("prompt %d scored %.2f, progress %d", self.index + 1, ratio, self.progress)

        self.index += 1
        if self.index >= len(self.prompts):
            self.completed = True
            self.selected = []
            self.bus.emit(Signal.TRAINING_COMPLETED, self.progress)
        else:
            self.selected = [False] * len(self.prompts[self.index].options)
        return ratio


class TrainingScene:
    """
    Intro cutscene while prompts load, then the round, then the win or lose
    cutscene. `outcome` is "won" or "lost" once the outro has played.
    """

    def __init__(self, source, config: Optional[GameConfig] = None, presenter=None,
                 bus: Optional[SignalBus] = None):
        self.source = source
        self.config = config or GameConfig()
        self.presenter = presenter or HeadlessPresenter()
        self.bus = bus or SignalBus()
        self.round: Optional[TrainingRound] = None
        self.dialogue: Optional[DialogueSequencer] = None
        self.outcome: Optional[str] = None
        self.error: Optional[TrainingDataError] = None
        self._prompts: Optional[asyncio.Task] = None
        self._tasks = set()

    def start(self) -> None:
        self._prompts = asyncio.get_running_loop().create_task(asyncio.to_thread(self.source.fetch))
        self._play(TRAINING_INTRO, self._on_intro_done)

    def _play(self, lines, then) -> None:
        self.bus.once(Signal.DIALOGUE_COMPLETE, then)
        self.dialogue = DialogueSequencer(lines, self.presenter, self.bus)
        self.dialogue.start()

    def _on_intro_done(self) -> None:
        self.dialogue = None
        task = asyncio.get_running_loop().create_task(self._begin_round())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _begin_round(self) -> None:
        try:
            prompts = await self._prompts
        except TrainingDataError as e:
            logger.error("training prompts unavailable: %s", e)
            self.error = e
            return
        self.round = TrainingRound(prompts, self.config, self.bus)
        self.bus.once(Signal.TRAINING_COMPLETED, self._on_training_completed)

    def _on_training_completed(self, progress: int) -> None:
        won = self.round.won
        self._play(TRAINING_SUCCESS if won else TRAINING_FAILURE,
                   lambda: self._finish("won" if won else "lost"))

    def _finish(self, outcome: str) -> None:
        self.dialogue = None
        self.outcome = outcome

    def advance(self) -> bool:
        return self.dialogue is not None and self.dialogue.advance()

    async def settle(self) -> None:
        while True:
            if self.dialogue is not None and self.dialogue.transitioning:
                await self.dialogue.wait()
            elif self._tasks:
                await asyncio.gather(*list(self._tasks))
            else:
                return

# vault_match/config.py
from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Tuple

from .errors import ConfigError

ENV_PREFIX = "VAULT_MATCH_"

DEFAULT_NAMES: Tuple[str, ...] = tuple(f"card-{i}" for i in range(8))


@dataclass(frozen=True)
class GameConfig:
    """
    Every tunable of a round. Times are in seconds.

    Rep:
      - rows * cols == 2 * len(names), each name fills exactly two slots
      - lives >= 1, grace_tries >= 1
    """

    names: Tuple[str, ...] = DEFAULT_NAMES
    rows: int = 2
    cols: int = 8

    lives: int = 3
    grace_tries: int = 2

    start_delay: float = 0.5
    mismatch_delay: float = 0.5
    shake_duration: float = 0.3
    shake_intensity: float = 0.01
    heart_fade_duration: float = 0.3
    heart_rise: int = 100

    # chance a player flip shows a decoy face (the sidekick "hallucinating")
    hallucination_chance: float = 0.15

    hint_highlight_duration: float = 3.0
    hint_roll_min: int = 1
    hint_roll_max: int = 100
    hint_timeout: float = 10.0
    hint_oracle_url: str = "http://127.0.0.1:3000/api/requestAI"

    training_prompts_url: str = "http://127.0.0.1:3000/api/trainingGameAIReq"
    training_max_selections: int = 5
    training_pass_ratio: float = 0.75
    training_min_progress: int = 1
    training_max_progress: int = 10
    training_start_progress: int = 1
    training_win_progress: int = 7

    def __post_init__(self) -> None:
        if len(set(self.names)) != len(self.names):
            raise ConfigError("card names must be distinct")
        if self.rows <= 0 or self.cols <= 0:
            raise ConfigError("rows/cols must be positive")
        if self.rows * self.cols != 2 * len(self.names):
            raise ConfigError("rows*cols must equal twice the number of card names")
        if self.lives < 1:
            raise ConfigError("lives must be at least 1")
        if self.grace_tries < 1:
            raise ConfigError("grace_tries must be at least 1")
        if not 0.0 <= self.hallucination_chance <= 1.0:
            raise ConfigError("hallucination_chance must be within [0, 1]")
        if self.hint_roll_min > self.hint_roll_max:
            raise ConfigError("hint roll range is empty")
        if self.hint_timeout <= 0:
            raise ConfigError("hint_timeout must be positive")
        if not (self.training_min_progress <= self.training_start_progress
                <= self.training_max_progress):
            raise ConfigError("training start progress out of bounds")

    @property
    def size(self) -> int:
        return self.rows * self.cols

    def instant(self) -> "GameConfig":
        """Same rules with every delay set to zero (tests, headless play)."""
        return replace(
            self,
            start_delay=0.0,
            mismatch_delay=0.0,
            shake_duration=0.0,
            heart_fade_duration=0.0,
        )

    @classmethod
    def from_env(cls, environ=None) -> "GameConfig":
        """
        Build a config from VAULT_MATCH_* variables, e.g. VAULT_MATCH_LIVES=5,
        VAULT_MATCH_NAMES=a,b,c,d. Unset variables keep their defaults.
        """
        env = os.environ if environ is None else environ
        overrides = {}
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            overrides[f.name] = _coerce(f.name, f.type, raw)
        return cls(**overrides)


def _coerce(name: str, annotation: str, raw: str):
    try:
        if annotation == "int":
            return int(raw)
        if annotation == "float":
            return float(raw)
        if annotation.startswith("Tuple"):
            return tuple(part.strip() for part in raw.split(",") if part.strip())
        return raw
    except ValueError:
        raise ConfigError(f"invalid value for {ENV_PREFIX}{name.upper()}: {raw!r}") from None

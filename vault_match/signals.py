# vault_match/signals.py
"""
Host-scene signals.

The core never switches scenes itself; it emits one of these and the host
decides what happens next.
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Tuple

logger = logging.getLogger(__name__)


class Signal(str, Enum):
    DIALOGUE_COMPLETE = "dialogueComplete"
    MATCH_GAME_WON = "matchGameWon"
    MATCH_GAME_LOST = "matchGameLost"
    TRAINING_COMPLETED = "trainingCompleted"


Handler = Callable[..., Any]

HISTORY_SIZE = 256


class SignalBus:
    """
    Synchronous signal emitter.

    Handlers run in registration order. A failing handler is logged and does
    not stop the others.
    """

    def __init__(self, history_size: int = HISTORY_SIZE) -> None:
        # key -> [(handler, once)]
        self._handlers: Dict[str, List[Tuple[Handler, bool]]] = defaultdict(list)
        # most recent emitted keys, oldest first
        self.history: Deque[str] = deque(maxlen=history_size)

    def on(self, signal: Signal | str, handler: Handler) -> None:
        self._handlers[_key(signal)].append((handler, False))

    def once(self, signal: Signal | str, handler: Handler) -> None:
        self._handlers[_key(signal)].append((handler, True))

    def off(self, signal: Signal | str, handler: Handler) -> bool:
        entries = self._handlers.get(_key(signal), [])
        for i, (h, _) in enumerate(entries):
            if h == handler:
                entries.pop(i)
                return True
        return False

    def clear(self) -> None:
        self._handlers.clear()

    def listener_count(self, signal: Signal | str) -> int:
        return len(self._handlers.get(_key(signal), []))

    def emit(self, signal: Signal | str, *args: Any) -> None:
        key = _key(signal)
        self.history.append(key)
        entries = self._handlers.get(key, [])
        if not entries:
            logger.debug("no handlers for %s", key)
            return
        # once-handlers are dropped before running so re-entrant emits skip them
        self._handlers[key] = [(h, once) for h, once in entries if not once]
        for handler, _ in list(entries):
            try:
                handler(*args)
            except Exception:
                logger.exception("handler error for %s", key)


def _key(signal: Signal | str) -> str:
    return signal.value if isinstance(signal, Signal) else signal

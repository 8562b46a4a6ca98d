# vault_match/server.py
from __future__ import annotations

import argparse
import asyncio
import logging
import threading
from dataclasses import replace

from flask import Flask, jsonify, request

from .animation import HeadlessAnimator, HeadlessPresenter
from .config import GameConfig
from .hints import HintService, HttpHintOracle
from .scene import VaultScene

logger = logging.getLogger(__name__)

app = Flask(__name__)


class LoopThread:
    """Owns the event loop the scene lives on; Flask threads hand work to it."""

    def __init__(self):
        self.loop = asyncio.new_event_loop()
        self.thread = threading.Thread(target=self._run, name="vault-loop", daemon=True)
        self.thread.start()

    def _run(self):
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def call(self, fn, *args, timeout: float = 5.0):
        async def invoke():
            return fn(*args)
        return self.run(invoke(), timeout=timeout)

    def run(self, coro, timeout: float = 5.0):
        return asyncio.run_coroutine_threadsafe(coro, self.loop).result(timeout)


LOOP: LoopThread | None = None
# One scene for the whole server, like a single browser tab.
STATE: VaultScene | None = None


def _loop() -> LoopThread:
    global LOOP
    if LOOP is None:
        LOOP = LoopThread()
    return LOOP


def make_oracle(config: GameConfig):
    return HttpHintOracle(config.hint_oracle_url, timeout=config.hint_timeout)


def make_scene(config: GameConfig, flip_duration: float) -> VaultScene:
    return VaultScene(
        config,
        animator=HeadlessAnimator.for_config(config, flip_duration=flip_duration),
        presenter=HeadlessPresenter(),
        hint_service=HintService(make_oracle(config), config),
    )


def _no_game():
    return jsonify({"status": "error", "message": "game not created"}), 400


@app.post("/new")
def api_new():
    global STATE
    data = request.get_json(silent=True) or {}

    try:
        config = GameConfig.from_env()
        if "lives" in data:
            config = replace(config, lives=int(data["lives"]))
        if "grace_tries" in data:
            config = replace(config, grace_tries=int(data["grace_tries"]))
        if data.get("instant"):
            config = config.instant()
        flip_duration = 0.0 if data.get("instant") else float(data.get("flip_duration", 0.5))
    except (TypeError, ValueError) as e:
        return jsonify({"status": "error", "message": str(e)}), 400

    loop = _loop()
    if STATE is not None:
        loop.call(STATE.teardown)
    scene = make_scene(config, flip_duration)
    loop.call(scene.start)
    STATE = scene
    logger.info("new game: %d lives, %d grace tries", config.lives, config.grace_tries)
    return jsonify({"status": "ok"})


@app.post("/advance")
def api_advance():
    if STATE is None:
        return _no_game()
    return jsonify({"status": "ok", "accepted": _loop().call(STATE.advance)})


@app.post("/select")
def api_select():
    if STATE is None:
        return _no_game()

    data = request.get_json(force=True)
    try:
        if "position" in data:
            accepted = _loop().call(STATE.select, int(data["position"]))
        else:
            accepted = _loop().call(STATE.click, float(data["x"]), float(data["y"]))
    except (KeyError, TypeError, ValueError):
        return jsonify({"status": "error", "message": "expected position or x/y"}), 400
    return jsonify({"status": "ok", "accepted": accepted})


@app.post("/peek")
def api_peek():
    if STATE is None:
        return _no_game()
    return jsonify({"status": "ok", "accepted": _loop().call(STATE.toggle_peek)})


@app.post("/hint")
def api_hint():
    if STATE is None:
        return _no_game()
    position = _loop().run(STATE.request_hint(), timeout=STATE.config.hint_timeout + 5)
    return jsonify({"status": "ok", "position": position})


@app.post("/pause")
def api_pause():
    if STATE is None:
        return _no_game()
    return jsonify({"status": "ok", "paused": _loop().call(STATE.toggle_pause)})


@app.post("/restart")
def api_restart():
    if STATE is None:
        return _no_game()
    _loop().call(STATE.restart)
    return jsonify({"status": "ok"})


@app.get("/state")
def api_state():
    if STATE is None:
        return _no_game()
    return jsonify({"status": "ok", "state": _loop().call(STATE.snapshot)})


def main(argv=None):
    ap = argparse.ArgumentParser(description="Vault memory-match game server")
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=5000)
    ap.add_argument("--debug", action="store_true")
    a = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if a.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # debug=True only for development
    app.run(host=a.host, port=a.port, debug=a.debug, use_reloader=False)


if __name__ == "__main__":
    main()

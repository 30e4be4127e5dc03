# memory_puzzle/server.py
from __future__ import annotations
import argparse
import asyncio
import logging
import uuid
from threading import Lock
from typing import Callable, Dict, Optional

from flask import Flask, jsonify, request

from . import commands
from .difficulty import DEFAULT_DIFFICULTY
from .errors import ConfirmationRequired, SessionNotFound
from .scheduler import Scheduler, ThreadingScheduler
from .session import PuzzleSession
from .settings import Timings
from .solver import AutoSolver

logger = logging.getLogger(__name__)


class SessionStore:
    """Independent puzzle sessions keyed by id."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._sessions: Dict[str, PuzzleSession] = {}

    def add(self, session: PuzzleSession) -> str:
        session_id = uuid.uuid4().hex
        with self._lock:
            self._sessions[session_id] = session
        return session_id

    def get(self, session_id: str) -> PuzzleSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def remove(self, session_id: str) -> PuzzleSession:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


def _error(message: str, code: int):
    return jsonify({"status": "error", "message": message}), code


def parse_index(value: object) -> int:
    """Card index from a JSON body: ints, integral floats and digit strings only."""
    if isinstance(value, bool):
        raise ValueError("index must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"index must be an integer, got {value!r}")
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            raise ValueError(f"index must be an integer, got {value!r}") from None
    raise ValueError("index must be an integer")


def create_app(
    timings: Optional[Timings] = None,
    scheduler_factory: Callable[[], Scheduler] = ThreadingScheduler,
) -> Flask:
    app = Flask(__name__)
    store = SessionStore()
    app.extensions["memory_puzzle"] = store
    game_timings = timings or Timings.from_env()

    def payload() -> dict:
        data = request.get_json(force=True, silent=True)
        return data if isinstance(data, dict) else {}

    @app.errorhandler(SessionNotFound)
    def not_found(e: SessionNotFound):
        return _error(str(e), 404)

    @app.errorhandler(ConfirmationRequired)
    def needs_confirm(e: ConfirmationRequired):
        return _error(str(e), 409)

    @app.errorhandler(ValueError)
    def bad_value(e: ValueError):
        return _error(str(e), 400)

    @app.errorhandler(KeyError)
    def missing_field(e: KeyError):
        return _error(f"missing field: {e.args[0] if e.args else e}", 400)

    @app.get("/difficulties")
    def api_difficulties():
        return jsonify({"status": "ok", "difficulties": commands.list_difficulties()})

    @app.post("/sessions")
    def api_new():
        data = payload()
        session = commands.new_game(
            data.get("difficulty") or DEFAULT_DIFFICULTY,
            scheduler=scheduler_factory(),
            timings=game_timings,
        )
        session_id = store.add(session)
        logger.info("created session %s (%s)", session_id, session.difficulty.value)
        return jsonify({"id": session_id, **commands.snapshot(session)}), 201

    @app.get("/sessions/<session_id>")
    def api_state(session_id: str):
        session = store.get(session_id)
        return jsonify({"id": session_id, **commands.snapshot(session)})

    @app.post("/sessions/<session_id>/reveal")
    def api_reveal(session_id: str):
        session = store.get(session_id)
        data = payload()
        return jsonify(commands.pick(session, parse_index(data["index"])))

    @app.post("/sessions/<session_id>/reset")
    def api_reset(session_id: str):
        session = store.get(session_id)
        data = payload()
        result = commands.reset(session, data.get("difficulty"), confirm=bool(data.get("confirm", False)))
        return jsonify({"id": session_id, **result})

    @app.post("/sessions/<session_id>/solve")
    def api_solve(session_id: str):
        session = store.get(session_id)
        data = payload()
        limit = data.get("max_iterations")
        solver = AutoSolver(session, max_iterations=int(limit) if limit is not None else None)
        result = asyncio.run(solver.run())
        return jsonify({"id": session_id, **commands.solve_report(session, result)})

    @app.delete("/sessions/<session_id>")
    def api_delete(session_id: str):
        store.remove(session_id).close()
        return jsonify({"status": "ok", "id": session_id})

    return app


def main() -> None:
    p = argparse.ArgumentParser(description="memory puzzle HTTP server")
    p.add_argument("-H", "--host", default="127.0.0.1")
    p.add_argument("-p", "--port", type=int, default=5000)
    p.add_argument("--debug", action="store_true")
    a = p.parse_args()
    logging.basicConfig(level=logging.DEBUG if a.debug else logging.INFO)
    create_app().run(host=a.host, port=a.port, debug=a.debug, threaded=True)


if __name__ == "__main__":
    main()

# memory_puzzle/client.py
from __future__ import annotations
import argparse
import json
from typing import Any, Dict, Optional

import requests

from .difficulty import DEFAULT_DIFFICULTY


class PuzzleClientError(RuntimeError):
    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class PuzzleClient:
    """Thin wrapper over the HTTP API served by memory_puzzle.server."""

    def __init__(self, base_url: str = "http://127.0.0.1:5000", http: Optional[requests.Session] = None, timeout: float = 5.0):
        self.base_url = base_url.rstrip("/")
        self.http = http if http is not None else requests.Session()
        self.timeout = timeout

    def _call(self, method: str, path: str, body: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None) -> Dict[str, Any]:
        r = self.http.request(method, f"{self.base_url}{path}", json=body, timeout=timeout or self.timeout)
        try:
            data = r.json()
        except ValueError:
            data = {}
        if r.status_code >= 400:
            raise PuzzleClientError(r.status_code, data.get("message", r.reason or "request failed"))
        return data

    def difficulties(self) -> Dict[str, Any]:
        return self._call("GET", "/difficulties")

    def new_session(self, difficulty: str = DEFAULT_DIFFICULTY.value) -> Dict[str, Any]:
        return self._call("POST", "/sessions", {"difficulty": difficulty})

    def state(self, session_id: str) -> Dict[str, Any]:
        return self._call("GET", f"/sessions/{session_id}")

    def reveal(self, session_id: str, index: int) -> Dict[str, Any]:
        return self._call("POST", f"/sessions/{session_id}/reveal", {"index": index})

    def reset(self, session_id: str, difficulty: Optional[str] = None, confirm: bool = False) -> Dict[str, Any]:
        body: Dict[str, Any] = {"confirm": confirm}
        if difficulty is not None:
            body["difficulty"] = difficulty
        return self._call("POST", f"/sessions/{session_id}/reset", body)

    def solve(self, session_id: str, max_iterations: Optional[int] = None, timeout: float = 120.0) -> Dict[str, Any]:
        body = {} if max_iterations is None else {"max_iterations": max_iterations}
        # the solver plays in real time on the server
        return self._call("POST", f"/sessions/{session_id}/solve", body, timeout=timeout)

    def close(self, session_id: str) -> Dict[str, Any]:
        return self._call("DELETE", f"/sessions/{session_id}")


def main() -> None:
    ap = argparse.ArgumentParser(description="memory puzzle HTTP client")
    ap.add_argument("--url", default="http://127.0.0.1:5000")
    sub = ap.add_subparsers(dest="cmd", required=True)
    new = sub.add_parser("new")
    new.add_argument("--difficulty", default=DEFAULT_DIFFICULTY.value)
    st = sub.add_parser("state")
    st.add_argument("id")
    rv = sub.add_parser("reveal")
    rv.add_argument("id")
    rv.add_argument("index", type=int)
    sv = sub.add_parser("solve")
    sv.add_argument("id", nargs="?")
    sv.add_argument("--difficulty", default=DEFAULT_DIFFICULTY.value)
    a = ap.parse_args()

    c = PuzzleClient(a.url)
    try:
        if a.cmd == "new":
            out = c.new_session(a.difficulty)
        elif a.cmd == "state":
            out = c.state(a.id)
        elif a.cmd == "reveal":
            out = c.reveal(a.id, a.index)
        else:
            session_id = a.id or c.new_session(a.difficulty)["id"]
            out = c.solve(session_id)
    except (PuzzleClientError, requests.RequestException) as e:
        raise SystemExit(f"ERROR {e}")
    print(json.dumps(out, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()

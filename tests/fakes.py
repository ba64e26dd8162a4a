"""Test doubles shared across the suite."""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx

BACKEND_URL = "http://agent.test"

TERMINAL_PAYLOAD = {
    "id": 42,
    "name": "Guichê Central",
    "provider": {"id": 1, "name": "Filazero", "slug": "filazero"},
    "location": {"id": 3, "name": "Centro"},
    "services": [
        {
            "id": 9,
            "name": "Atendimento",
            "sessions": [
                {"id": 1, "start": "08:00", "end": "12:00", "hasSlotsLeft": True}
            ],
        }
    ],
}


class FakeBackend:
    """Scriptable agent backend recording every request it receives.

    Each route maps to a callable ``(request) -> httpx.Response``; the
    defaults answer like a healthy backend.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {
            ("POST", "/api/chat"): lambda r: httpx.Response(
                200, json={"response": "Resposta do agente", "toolsUsed": []}
            ),
            ("POST", "/api/terminal/validate"): lambda r: httpx.Response(
                200, json=TERMINAL_PAYLOAD
            ),
            ("GET", "/api/health"): lambda r: httpx.Response(200, json={"ok": True}),
        }

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": "not found"})
        return route(request)

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def bodies(self, path: str) -> list[dict]:
        return [json.loads(r.content) for r in self.calls(path)]

    def fail(self, method: str, path: str, status_code: int = 500, **kwargs) -> None:
        self.routes[(method, path)] = lambda r: httpx.Response(status_code, **kwargs)

    def raise_network_error(self, method: str, path: str) -> None:
        def _raise(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        self.routes[(method, path)] = _raise

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.MockTransport(self.handle), base_url=BACKEND_URL
        )


class RecordingSocket:
    """Stand-in for a transport's ``send`` callable; keeps decoded frames."""

    def __init__(self, fail: bool = False) -> None:
        self.frames: list[dict] = []
        self.fail = fail

    async def send(self, payload: str) -> None:
        if self.fail:
            raise ConnectionError("socket closed")
        self.frames.append(json.loads(payload))

    def types(self) -> list[str]:
        return [f["type"] for f in self.frames]

import asyncio
import base64
import json
from typing import Any, Dict, List, Optional

import pytest

from kimi_adapter.rpc import ChatTextResult, ConnectConfig


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode().rstrip("=")


def build_token(claims: Optional[Dict[str, Any]] = None, **overrides: Any) -> str:
    payload: Dict[str, Any] = {
        "app_id": "kimi",
        "typ": "access",
        "device_id": "dev-42",
        "ssid": "sess-7",
        "sub": "user-1",
    }
    if claims is not None:
        payload = dict(claims)
    payload.update(overrides)
    header = _b64url(json.dumps({"alg": "HS512", "typ": "JWT"}).encode())
    body = _b64url(json.dumps(payload).encode())
    return f"{header}.{body}.c2lnbmF0dXJl"


def text_event(content: str) -> Dict[str, Any]:
    return {"block": {"text": {"content": content}}}


class FakeBackend:
    """Stands in for the Connect RPC client and records how it is used."""

    def __init__(
        self,
        events: Optional[List[Any]] = None,
        reply: Any = None,
        error: Optional[BaseException] = None,
        fail_after: Optional[int] = None,
        hang_after: Optional[int] = None,
    ) -> None:
        self.events = events or []
        self.reply = reply if reply is not None else ChatTextResult(chat_id="chat-1", text="Hello!")
        self.error = error
        self.fail_after = fail_after
        self.hang_after = hang_after
        self.configs: List[ConnectConfig] = []
        self.text_calls: List[Dict[str, Any]] = []
        self.stream_calls: List[Dict[str, Any]] = []
        self.consumed = 0
        self.closed = False

    def factory(self, config: ConnectConfig) -> "FakeBackend":
        self.configs.append(config)
        return self

    async def chat_text(self, content, *, scenario, thinking):
        self.text_calls.append({"content": content, "scenario": scenario, "thinking": thinking})
        if self.error is not None:
            raise self.error
        return self.reply

    def chat(self, content, *, scenario, thinking):
        self.stream_calls.append({"content": content, "scenario": scenario, "thinking": thinking})
        return self._events()

    async def _events(self):
        try:
            for i, event in enumerate(self.events):
                if self.fail_after is not None and i == self.fail_after:
                    raise self.error or RuntimeError("backend exploded")
                if self.hang_after is not None and i == self.hang_after:
                    await asyncio.Event().wait()
                self.consumed += 1
                yield event
        finally:
            self.closed = True


@pytest.fixture
def token() -> str:
    return build_token()


@pytest.fixture
def make_token():
    return build_token

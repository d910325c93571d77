"""Boundary with the Connect RPC chat client.

The client itself (transport, handshake, wire protocol) lives outside this
package; deployments point ``KIMI_RPC_CLIENT`` at a factory that accepts a
:class:`ConnectConfig` and returns an object implementing :class:`ChatClient`.
"""
from __future__ import annotations

import importlib
from dataclasses import dataclass
from typing import Any, AsyncIterable, Awaitable, Callable, Iterable, Optional, Protocol, Union

from pydantic import BaseModel, ConfigDict

from .auth import extract_device_id, extract_session_id, extract_user_id
from .scenario import Scenario


@dataclass(frozen=True)
class ConnectConfig:
    base_url: str
    auth_token: str
    device_id: Optional[str] = None
    session_id: Optional[str] = None
    user_id: Optional[str] = None


def build_connect_config(auth_token: str, base_url: str) -> ConnectConfig:
    return ConnectConfig(
        base_url=base_url,
        auth_token=auth_token,
        device_id=extract_device_id(auth_token),
        session_id=extract_session_id(auth_token),
        user_id=extract_user_id(auth_token),
    )


class TextPart(BaseModel):
    model_config = ConfigDict(extra="allow")

    content: Optional[str] = None


class MessageBlock(BaseModel):
    model_config = ConfigDict(extra="allow")

    text: Optional[TextPart] = None


class ChatEvent(BaseModel):
    """One message event from a streaming chat call."""

    model_config = ConfigDict(extra="allow")

    block: Optional[MessageBlock] = None
    done: bool = False

    @property
    def text(self) -> str:
        if self.block is None or self.block.text is None:
            return ""
        return self.block.text.content or ""


class ChatTextResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    chat_id: Optional[str] = None
    text: str = ""


ChatEvents = Union[AsyncIterable[Any], Awaitable[Iterable[Any]]]


class ChatClient(Protocol):
    async def chat_text(self, content: str, *, scenario: Scenario, thinking: bool) -> Any:
        ...

    def chat(self, content: str, *, scenario: Scenario, thinking: bool) -> ChatEvents:
        ...


ClientFactory = Callable[[ConnectConfig], ChatClient]


def as_chat_event(raw: Any) -> ChatEvent:
    if isinstance(raw, ChatEvent):
        return raw
    if isinstance(raw, dict):
        return ChatEvent.model_validate(raw)
    return ChatEvent.model_validate(raw, from_attributes=True)


def as_text_result(raw: Any) -> ChatTextResult:
    if isinstance(raw, ChatTextResult):
        return raw
    if isinstance(raw, dict):
        return ChatTextResult.model_validate(raw)
    return ChatTextResult.model_validate(raw, from_attributes=True)


def load_client_factory(path: str) -> ClientFactory:
    """Import ``"package.module:attr"`` and return the attribute."""
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Client factory must look like 'package.module:attr', got {path!r}")
    module = importlib.import_module(module_name)
    factory = module
    for name in attr.split("."):
        factory = getattr(factory, name)
    if not callable(factory):
        raise TypeError(f"{path!r} is not callable")
    return factory  # type: ignore[return-value]

from __future__ import annotations

import asyncio
import inspect
import sys
from typing import Any, AsyncIterator, Iterable, Optional, Sequence

from .auth import require_structured_token
from .config import DEFAULT_BASE_URL, settings
from .errors import AdapterError, BackendCallFailure
from .rpc import (
    ChatClient,
    ClientFactory,
    as_chat_event,
    as_text_result,
    build_connect_config,
)
from .scenario import ScenarioSelection, resolve_scenario
from .transform import (
    DONE_FRAME,
    completion_chunk,
    completion_response,
    extract_message_text,
    sse_frame,
)


class _Closed:
    __slots__ = ("error",)

    def __init__(self, error: Optional[BaseException] = None) -> None:
        self.error = error


class StreamChannel:
    """Bounded queue of SSE frames fed by a producer task.

    Iterating yields frames in the order they were sent. A producer failure is
    raised from iteration once the frames queued before it have been read.
    ``aclose`` cancels the producer.
    """

    def __init__(self, maxsize: int = 16) -> None:
        self._queue: "asyncio.Queue[Any]" = asyncio.Queue(maxsize=max(1, maxsize))
        self._task: Optional[asyncio.Task] = None
        self._finished = False

    def attach(self, task: asyncio.Task) -> None:
        self._task = task

    async def send(self, frame: str) -> None:
        await self._queue.put(frame)

    async def close(self, error: Optional[BaseException] = None) -> None:
        await self._queue.put(_Closed(error))

    def __aiter__(self) -> "StreamChannel":
        return self

    async def __anext__(self) -> str:
        if self._finished:
            raise StopAsyncIteration
        item = await self._queue.get()
        if isinstance(item, _Closed):
            self._finished = True
            if item.error is not None:
                raise item.error
            raise StopAsyncIteration
        return item

    async def aclose(self) -> None:
        self._finished = True
        task = self._task
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)


def _prepare(
    model: str,
    messages: Sequence[Any],
    auth_token: str,
    client_factory: ClientFactory,
    base_url: str,
) -> "tuple[str, ChatClient, ScenarioSelection]":
    # fail before touching the network
    require_structured_token(auth_token)
    content = extract_message_text(messages)
    config = build_connect_config(auth_token, base_url)
    try:
        client = client_factory(config)
    except AdapterError:
        raise
    except Exception as e:
        raise BackendCallFailure(f"Connect RPC client setup failed: {e}") from e
    selection = resolve_scenario(model)
    if settings.debug:
        print(
            f"[proxy] model: {model} -> scenario: {selection.scenario.value}, thinking: {selection.thinking}",
            file=sys.stderr,
        )
    return content, client, selection


async def create_completion(
    model: str,
    messages: Sequence[Any],
    auth_token: str,
    *,
    client_factory: ClientFactory,
    base_url: str = DEFAULT_BASE_URL,
) -> dict:
    if settings.debug:
        print(f"[proxy] Using Connect RPC API with model: {model}", file=sys.stderr)
    content, client, selection = _prepare(model, messages, auth_token, client_factory, base_url)

    try:
        raw = await client.chat_text(
            content,
            scenario=selection.scenario,
            thinking=selection.thinking,
        )
        result = as_text_result(raw)
    except Exception as e:
        raise BackendCallFailure(f"Connect RPC error: {e}") from e

    return completion_response(
        model=model,
        prompt=content,
        text=result.text,
        completion_id=result.chat_id,
    )


async def _from_iterable(items: Iterable[Any]) -> AsyncIterator[Any]:
    for item in items:
        yield item


async def _aclose(obj: Any) -> None:
    closer = getattr(obj, "aclose", None)
    if closer is not None:
        await closer()


async def _pump(
    channel: StreamChannel,
    client: ChatClient,
    content: str,
    selection: ScenarioSelection,
    model: str,
) -> None:
    error: Optional[BaseException] = None
    source: Any = None
    stream: Any = None
    try:
        try:
            source = client.chat(content, scenario=selection.scenario, thinking=selection.thinking)
            if inspect.isawaitable(source):
                source = await source
            stream = source.__aiter__() if hasattr(source, "__aiter__") else _from_iterable(source)

            async for raw in stream:
                event = as_chat_event(raw)
                if event.text:
                    await channel.send(sse_frame(completion_chunk(model, event.text)))
                if event.done:
                    await channel.send(sse_frame(completion_chunk(model, finish_reason="stop")))
                    await channel.send(DONE_FRAME)
                    break
        finally:
            if stream is not None:
                await _aclose(stream)
            if source is not None and source is not stream:
                await _aclose(source)
    except asyncio.CancelledError:
        if settings.debug:
            print("[proxy] stream cancelled by consumer", file=sys.stderr)
        raise
    except Exception as e:
        print(f"[proxy] Connect RPC stream error: {type(e).__name__}: {e}", file=sys.stderr)
        error = BackendCallFailure(f"Connect RPC stream error: {e}")
        error.__cause__ = e

    await channel.close(error)
    if settings.debug and error is None:
        print("[proxy] Stream ended normally", file=sys.stderr)


async def create_completion_stream(
    model: str,
    messages: Sequence[Any],
    auth_token: str,
    *,
    client_factory: ClientFactory,
    base_url: str = DEFAULT_BASE_URL,
    buffer_size: Optional[int] = None,
) -> StreamChannel:
    """Start a streaming chat and return the channel its SSE frames arrive on.

    Credential problems raise here; backend problems surface while iterating
    the returned channel.
    """
    if settings.debug:
        print(f"[proxy] Using Connect RPC API (streaming) with model: {model}", file=sys.stderr)
    content, client, selection = _prepare(model, messages, auth_token, client_factory, base_url)

    channel = StreamChannel(buffer_size if buffer_size is not None else settings.stream_buffer_size)
    channel.attach(asyncio.create_task(_pump(channel, client, content, selection, model)))
    return channel

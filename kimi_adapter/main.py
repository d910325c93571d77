from __future__ import annotations

import os
import sys
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse

from .auth import DiagnosticSink, extract_auth_token
from .chat import StreamChannel, create_completion, create_completion_stream
from .config import settings
from .errors import AdapterError, ClientNotConfigured
from .rpc import ClientFactory, load_client_factory
from .scenario import SUPPORTED_MODELS
from .schemas.openai import ChatCompletionRequest, ErrorResponse, ModelCard, ModelList


app = FastAPI(title="Kimi Connect RPC Proxy")

_CLIENT_FACTORY: Optional[ClientFactory] = None


def get_client_factory() -> ClientFactory:
    global _CLIENT_FACTORY
    if _CLIENT_FACTORY is None:
        if not settings.rpc_client:
            raise ClientNotConfigured("No Connect RPC client configured; set KIMI_RPC_CLIENT")
        _CLIENT_FACTORY = load_client_factory(settings.rpc_client)
    return _CLIENT_FACTORY


def _header_sink(line: str) -> None:
    print(f"[proxy] {line}", file=sys.stderr)


def _diagnostics() -> Optional[DiagnosticSink]:
    return _header_sink if settings.log_inbound_headers else None


def _openai_error(status: int, message: str, error_type: str, code: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(error={"message": message, "type": error_type, "code": code})
    return JSONResponse(status_code=status, content=body.model_dump())


@app.exception_handler(AdapterError)
async def _adapter_error_handler(request: Request, exc: AdapterError) -> JSONResponse:
    if settings.debug or exc.status_code >= 500:
        print(f"[proxy] {type(exc).__name__}: {exc.message}", file=sys.stderr)
    return _openai_error(exc.status_code, exc.message, exc.error_type, exc.code)


async def _relay(channel: StreamChannel) -> AsyncIterator[bytes]:
    # closing the channel also stops the backend stream when the client goes away
    try:
        async for frame in channel:
            yield frame.encode()
    finally:
        await channel.aclose()


@app.post("/v1/chat/completions")
async def chat_completions(request: Request):
    token = extract_auth_token(request.headers, diagnostics=_diagnostics())

    try:
        body = await request.json()
    except Exception:
        return _openai_error(400, "Invalid JSON body", "invalid_request_error")

    try:
        parsed = ChatCompletionRequest.model_validate(body)
    except Exception as e:
        return _openai_error(400, str(e), "invalid_request_error")

    factory = get_client_factory()

    if not parsed.stream:
        result = await create_completion(
            parsed.model,
            parsed.messages,
            token,
            client_factory=factory,
            base_url=settings.kimi_base_url,
        )
        return JSONResponse(content=result)

    channel = await create_completion_stream(
        parsed.model,
        parsed.messages,
        token,
        client_factory=factory,
        base_url=settings.kimi_base_url,
        buffer_size=settings.stream_buffer_size,
    )
    return StreamingResponse(
        _relay(channel),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


@app.get("/")
async def root():
    return {"ok": True, "backend": settings.kimi_base_url}


@app.get("/v1/models")
async def list_models():
    models = ModelList(data=[ModelCard(id=model_id) for model_id in SUPPORTED_MODELS])
    return JSONResponse(content=models.model_dump())


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=os.environ.get("HOST", "0.0.0.0"), port=int(os.environ.get("PORT", "8000")))

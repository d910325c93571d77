from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# Minimal OpenAI chat-completions schema (text-only)


class ChatMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    role: Optional[str] = "user"
    # Usually a string or a list of typed parts; other shapes read as empty text
    content: Any = None


class ChatCompletionRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    model: str
    messages: List[ChatMessage] = Field(..., min_length=1)
    stream: Optional[bool] = False


class ErrorBody(BaseModel):
    message: str
    type: str
    code: Optional[str] = None


class ErrorResponse(BaseModel):
    error: ErrorBody


class ModelCard(BaseModel):
    id: str
    object: Literal["model"] = "model"
    created: int = 0
    owned_by: str = "moonshot"


class ModelList(BaseModel):
    object: Literal["list"] = "list"
    data: List[ModelCard]

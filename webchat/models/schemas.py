from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Message(BaseModel):
    role: Literal["user", "ai"]
    content: str


# --- Requests ---


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    messages: list[Message] = Field(default_factory=list)
    conversation_id: str | None = Field(default=None, alias="conversationId")


class ContinueRequest(BaseModel):
    messages: list[Message]


class ShareRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    conversation_id: str = Field(alias="conversationId")


# --- Responses ---


class ContinueResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    conversation_id: str = Field(alias="conversationId")
    success: bool = True


class ConversationResponse(BaseModel):
    conversation: list[Message]


class ConversationListResponse(BaseModel):
    conversations: list[str]


class ShareResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    shared_id: str = Field(alias="sharedId")


class SharedMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    shared_by: str = Field(alias="sharedBy")
    shared_at: str = Field(alias="sharedAt")
    original_id: str = Field(alias="originalId")


class SharedConversationResponse(BaseModel):
    messages: list[Message]
    metadata: SharedMetadata


class SessionStatusResponse(BaseModel):
    status: str

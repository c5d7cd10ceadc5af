"""Data models and schemas for the chat relay."""

from typing import List
from pydantic import BaseModel


class Message(BaseModel):
    """Chat message model."""
    role: str
    content: str


class ChatRequest(BaseModel):
    """Request model for the relay chat endpoint."""
    messages: List[Message]
    provider: str


class ProviderSettings(BaseModel):
    """Upstream provider resolved from configuration and environment."""
    name: str
    url: str = ""
    api_key: str = ""
    model: str = ""

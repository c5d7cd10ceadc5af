"""A streaming relay between a browser chat UI and an LLM provider."""

__version__ = "0.1.0"

from .config import load_config
from .api import app
from .providers import resolve_provider
from .streaming import SSEDeltaDecoder, relay_tokens
from .client import ChatSession, ChatClientError

"""Upstream provider selection for the chat relay."""

import logging
import os
from typing import Dict, Any, List, Optional

from .models import ProviderSettings

logger = logging.getLogger(__name__)


def resolve_provider(name: str, config: Dict[str, Any]) -> Optional[ProviderSettings]:
    """
    Look up a provider by name and read its credentials from the environment.

    Args:
        name: Provider name sent by the client (e.g. "openrouter")
        config: Loaded configuration containing a "providers" mapping

    Returns:
        ProviderSettings for a known provider, None otherwise
    """
    providers = config.get("providers") or {}
    entry = providers.get(name) if isinstance(name, str) else None
    if entry is None:
        return None

    return ProviderSettings(
        name=name,
        url=os.environ.get(entry.get("url_env", ""), ""),
        api_key=os.environ.get(entry.get("key_env", ""), ""),
        model=os.environ.get(entry.get("model_env", ""), ""),
    )


def build_upstream_payload(
    provider: ProviderSettings, messages: List[Dict[str, Any]]
) -> Dict[str, Any]:
    """Request body for a streaming chat completion."""
    return {
        "model": provider.model,
        "messages": messages,
        "stream": True,
    }


def build_upstream_headers(provider: ProviderSettings) -> Dict[str, str]:
    return {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {provider.api_key}",
    }

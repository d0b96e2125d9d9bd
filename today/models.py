"""Model listing for the interactive setup and config commands.

Each fetcher hits a provider's model-listing endpoint and returns a list of
model IDs, or an empty list on any failure.
"""

import json
import logging
import urllib.request
from typing import Dict, List, Optional

from today.settings import Settings, resolve_api_key

logger = logging.getLogger("today.models")

FETCH_TIMEOUT = 5

OPENAI_MODELS_URL = "https://api.openai.com/v1/models"
OPENROUTER_MODELS_URL = "https://openrouter.ai/api/v1/models"

# OpenRouter lists hundreds of models; keep the well-known vendors
_OPENROUTER_VENDORS = (
    "google/",
    "anthropic/",
    "openai/",
    "meta-llama/",
    "deepseek/",
    "cohere/",
    "mistralai/",
    "amazon/",
)


def _get_json(url: str, headers: Optional[Dict[str, str]] = None) -> Optional[dict]:
    req = urllib.request.Request(url, headers=headers or {})
    try:
        with urllib.request.urlopen(req, timeout=FETCH_TIMEOUT) as resp:
            return json.loads(resp.read())
    except Exception as e:
        logger.debug("Model listing failed for %s: %s", url, e)
        return None


def fetch_ollama_models(host: str) -> List[str]:
    """Fetch locally installed models from Ollama."""
    data = _get_json(f"{host.rstrip('/')}/api/tags")
    if not isinstance(data, dict):
        return []
    return [m["name"] for m in data.get("models", []) if m.get("name")]


def fetch_lmstudio_models(host: str) -> List[str]:
    """Fetch models loaded in LM Studio."""
    data = _get_json(f"{host.rstrip('/')}/v1/models")
    if not isinstance(data, dict):
        return []
    return [m["id"] for m in data.get("data", []) if m.get("id")]


def fetch_openai_models(api_key: str) -> List[str]:
    """Fetch GPT chat models from the OpenAI API.

    Whisper, DALL-E, TTS and embedding models are filtered out.
    """
    data = _get_json(OPENAI_MODELS_URL, headers={"Authorization": f"Bearer {api_key}"})
    if not isinstance(data, dict):
        return []
    models = [m.get("id", "") for m in data.get("data", [])]
    return sorted(mid for mid in models if mid.startswith("gpt-"))


def fetch_openrouter_models(api_key: str) -> List[str]:
    """Fetch models from OpenRouter, limited to popular vendors."""
    headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
    data = _get_json(OPENROUTER_MODELS_URL, headers=headers)
    if not isinstance(data, dict):
        return []
    models = [m.get("id", "") for m in data.get("data", [])]
    return sorted(mid for mid in models if mid.startswith(_OPENROUTER_VENDORS))


def fetch_models_for_provider(provider: str, settings: Settings) -> List[str]:
    """Fetch available model IDs for a provider using the current settings.

    Key-based providers without a key return an empty list without
    touching the network.
    """
    if provider == "ollama":
        return fetch_ollama_models(settings.hosts.get("ollama", ""))
    if provider == "lmstudio":
        return fetch_lmstudio_models(settings.hosts.get("lmstudio", ""))

    fetchers = {
        "openai": fetch_openai_models,
        "openrouter": fetch_openrouter_models,
    }
    fetcher = fetchers.get(provider)
    api_key = resolve_api_key(settings, provider)
    if fetcher and api_key:
        return fetcher(api_key)
    return []

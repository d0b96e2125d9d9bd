"""Settings store for today.

Settings live in ~/.today/settings.json as a single JSON object. Files
written by older versions (or edited by hand) are merged over the
compiled-in defaults on load, so missing fields never break a run.
"""

import json
import logging
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger("today")

# ---------------------------------------------------------------------------
# Provider metadata
# ---------------------------------------------------------------------------

PROVIDER_INFO: Dict[str, Dict[str, Any]] = {
    "ollama": {
        "label": "ollama",
        "display": "Ollama",
        "description": "local models, no API key",
        "has_host": True,
        "has_api_key": False,
        "default_host": "http://localhost:11434",
        "default_model": "llama3.2",
        "env_var": None,
        "common_models": ["llama3.2", "llama3.1", "llama3", "mistral", "phi3", "gemma2"],
    },
    "lmstudio": {
        "label": "lm-studio",
        "display": "LM Studio",
        "description": "local OpenAI-compatible server",
        "has_host": True,
        "has_api_key": False,
        "default_host": "http://localhost:1234",
        "default_model": "local-model",
        "env_var": None,
        "common_models": ["local-model"],
    },
    "openai": {
        "label": "openai",
        "display": "OpenAI",
        "description": "GPT-4o, GPT-4o mini",
        "has_host": False,
        "has_api_key": True,
        "default_host": "",
        "default_model": "gpt-4o-mini",
        "env_var": "OPENAI_API_KEY",
        "common_models": ["gpt-4o", "gpt-4o-mini", "gpt-4-turbo", "gpt-3.5-turbo"],
    },
    "openrouter": {
        "label": "openrouter",
        "display": "OpenRouter",
        "description": "hosted models from many vendors",
        "has_host": False,
        "has_api_key": True,
        "default_host": "",
        "default_model": "google/gemini-flash-1.5",
        "env_var": "OPENROUTER_API_KEY",
        "common_models": [
            "google/gemini-flash-1.5",
            "anthropic/claude-3.5-sonnet",
            "openai/gpt-4o-mini",
            "meta-llama/llama-3.1-8b-instruct",
        ],
    },
}

# Auto-detection priority: local services first, cloud APIs last
PROVIDER_ORDER = ["ollama", "lmstudio", "openai", "openrouter"]

AUTO = "auto"
PROVIDER_CHOICES = [AUTO] + PROVIDER_ORDER

HOST_PROVIDERS = [p for p in PROVIDER_ORDER if PROVIDER_INFO[p]["has_host"]]
KEY_PROVIDERS = [p for p in PROVIDER_ORDER if PROVIDER_INFO[p]["has_api_key"]]

ProviderName = Literal["auto", "ollama", "lmstudio", "openai", "openrouter"]

# Config directory
CONFIG_DIR = Path.home() / ".today"
CONFIG_FILE = CONFIG_DIR / "settings.json"

DEFAULT_OUTPUT_FILE = "./today.txt"

# Fields holding one entry per provider; backfilled key-by-key on load
_PER_PROVIDER_FIELDS = ("models", "hosts", "apiKeys")


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class Settings(BaseModel):
    """The persisted configuration record.

    Attribute names are snake_case; the JSON file uses the camelCase aliases.
    """

    model_config = ConfigDict(populate_by_name=True)

    provider: ProviderName = AUTO
    models: Dict[str, str] = Field(
        default_factory=lambda: {p: PROVIDER_INFO[p]["default_model"] for p in PROVIDER_ORDER}
    )
    hosts: Dict[str, str] = Field(
        default_factory=lambda: {p: PROVIDER_INFO[p]["default_host"] for p in HOST_PROVIDERS}
    )
    api_keys: Dict[str, str] = Field(
        default_factory=lambda: {p: "" for p in KEY_PROVIDERS},
        alias="apiKeys",
    )
    output_file: str = Field(default=DEFAULT_OUTPUT_FILE, alias="outputFile")
    system_prompt: Optional[str] = Field(default=None, alias="systemPrompt")

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class RuntimeOverrides(BaseModel):
    """One-shot provider/model substitution from command-line flags."""

    provider: Optional[ProviderName] = None
    model: Optional[str] = None

    def is_empty(self) -> bool:
        return not self.provider and not self.model


# ---------------------------------------------------------------------------
# Load / save
# ---------------------------------------------------------------------------

def default_settings() -> Settings:
    return Settings()


def config_exists(path: Optional[Path] = None) -> bool:
    return Path(path or CONFIG_FILE).exists()


def merge_over_defaults(data: Dict[str, Any]) -> Settings:
    """Shallow-merge a raw settings dict over the defaults.

    The per-provider mappings are merged one level deeper so a file that
    predates a provider still gets that provider's defaults.

    Raises pydantic.ValidationError if the merged record is invalid.
    """
    merged = default_settings().to_json_dict()
    for key, value in data.items():
        if key in _PER_PROVIDER_FIELDS and isinstance(value, dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return Settings.model_validate(merged)


def load_config(path: Optional[Path] = None) -> Settings:
    """Load settings from disk, falling back to defaults.

    A missing file, malformed JSON or invalid values all yield defaults;
    the latter two log a warning.
    """
    path = Path(path or CONFIG_FILE)
    if not path.exists():
        return default_settings()

    try:
        content = json.loads(path.read_text(encoding="utf-8"))
    except (ValueError, OSError) as e:
        logger.warning("Failed to parse config file %s, using defaults: %s", path, e)
        return default_settings()

    if not isinstance(content, dict):
        logger.warning("Config file %s is not a JSON object, using defaults", path)
        return default_settings()

    try:
        return merge_over_defaults(content)
    except ValidationError as e:
        logger.warning("Invalid config file %s, using defaults: %s", path, e)
        return default_settings()


def save_config(settings: Settings, path: Optional[Path] = None) -> Path:
    """Write settings as JSON, replacing the whole file atomically.

    Returns the path written.
    """
    path = Path(path or CONFIG_FILE)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp", prefix=".settings-")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(json.dumps(settings.to_json_dict(), indent=2) + "\n")
        os.replace(tmp_path, str(path))
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise

    # May hold API keys
    if platform.system() != "Windows":
        path.chmod(0o600)

    logger.debug("Saved settings to %s", path)
    return path


# ---------------------------------------------------------------------------
# In-memory transforms
# ---------------------------------------------------------------------------

def apply_overrides(settings: Settings, overrides: RuntimeOverrides) -> Settings:
    """Return a copy of settings with runtime overrides applied.

    A model override targets the effective provider; under auto there is
    no target and it is ignored.
    """
    merged = settings.model_copy(deep=True)

    if overrides.provider:
        merged.provider = overrides.provider

    if overrides.model and merged.provider != AUTO:
        merged.models[merged.provider] = overrides.model

    return merged


def set_setting(settings: Settings, path: Sequence[str], value: Any) -> Settings:
    """Return a copy of settings with the field at ``path`` replaced.

    ``path`` uses attribute names, e.g. ``("hosts", "ollama")`` or
    ``("system_prompt",)``.
    """
    if not path:
        raise ValueError("empty settings path")
    data = settings.model_dump()
    target = data
    for key in path[:-1]:
        target = target.setdefault(key, {})
    target[path[-1]] = value
    return Settings.model_validate(data)


def resolve_api_key(settings: Settings, provider: str) -> str:
    """Return the API key for a provider.

    Resolution order: settings file, then the provider's env var.
    """
    key = (settings.api_keys.get(provider) or "").strip()
    if key:
        return key
    env_var = PROVIDER_INFO.get(provider, {}).get("env_var")
    if env_var:
        return os.getenv(env_var, "").strip()
    return ""


def providers_to_show(settings: Settings) -> List[str]:
    if settings.provider == AUTO:
        return list(PROVIDER_ORDER)
    return [settings.provider]


def mask_secret(value: str) -> str:
    """Mask a secret for display, showing first 8 and last 4 chars."""
    if len(value) <= 12:
        return value[:4] + "***"
    return value[:8] + "..." + value[-4:]

"""Provider resolution and text generation for today.

An explicit provider in settings is a hard commitment: one attempt, and
any failure is fatal. In auto mode providers are probed in priority order
(local services before cloud APIs) and the first one that is detected and
generates successfully wins.
"""

import logging
import urllib.request
from typing import Any, Dict, List, NamedTuple, Optional

import litellm

from today.settings import AUTO, PROVIDER_INFO, Settings, resolve_api_key

logger = logging.getLogger("today.llm")

litellm.suppress_debug_info = True

DETECT_TIMEOUT = 3
GENERATE_TIMEOUT = 120

DEFAULT_SYSTEM_PROMPT = """Refine the user's intention into this exact format:

Today will be a good day if: [one specific outcome]
I will do this by: [one concrete action]
Everything else can wait.

Be concise and actionable. Keep it focused on a single goal. It is important that you only output what is defined in the template above without any additional commentary or explanation."""


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class RefineError(Exception):
    """Base class for failures surfaced by refine_intention."""


class MissingAPIKeyError(RefineError):
    """Raised when an explicitly selected key-based provider has no key."""

    def __init__(self, provider: str):
        self.provider = provider
        info = PROVIDER_INFO[provider]
        hint = f" or set {info['env_var']}" if info.get("env_var") else ""
        super().__init__(
            f"{info['display']} requires an API key. "
            f"Add one with `today config`{hint}."
        )


class ProviderRequestError(RefineError):
    """Raised when a provider request fails in explicit mode."""

    def __init__(self, provider: str, cause: BaseException):
        self.provider = provider
        self.cause = cause
        message = str(cause) or "Unknown error occurred"
        super().__init__(f"{PROVIDER_INFO[provider]['display']} error: {message}")


class NoProviderAvailableError(RefineError):
    """Raised when auto mode finds no provider that can generate."""

    def __init__(self):
        super().__init__(
            "No LLM provider available. Please configure a provider or check your settings."
        )


class RefineResult(NamedTuple):
    refined: str
    provider: Optional[str]


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------

def _probe(url: str) -> bool:
    """Return True if ``url`` answers a GET with a 2xx status."""
    req = urllib.request.Request(url)
    try:
        with urllib.request.urlopen(req, timeout=DETECT_TIMEOUT) as resp:
            return 200 <= resp.status < 300
    except Exception as e:
        logger.debug("Probe %s failed: %s", url, e)
        return False


class Provider:
    """A backend that turns a prompt into text.

    Subclasses set ``name`` and implement ``detect`` and ``completion_kwargs``.
    """

    name = ""

    def __init__(self):
        info = PROVIDER_INFO[self.name]
        self.label = info["label"]
        self.display = info["display"]

    def detect(self, settings: Settings) -> bool:
        raise NotImplementedError

    def check_credentials(self, settings: Settings) -> None:
        pass

    def completion_kwargs(self, settings: Settings) -> Dict[str, Any]:
        raise NotImplementedError

    def generate(self, settings: Settings, system_prompt: str, user_input: str) -> str:
        call_kwargs = self.completion_kwargs(settings)
        logger.debug("Calling LiteLLM: model=%s (provider=%s)", call_kwargs["model"], self.name)
        response = litellm.completion(
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_input},
            ],
            timeout=GENERATE_TIMEOUT,
            **call_kwargs,
        )
        content = response.choices[0].message.content or ""
        return content.strip()


class HostProvider(Provider):
    """A local network service reachable at a configured host URL."""

    probe_path = ""

    def host(self, settings: Settings) -> str:
        host = settings.hosts.get(self.name) or PROVIDER_INFO[self.name]["default_host"]
        return host.rstrip("/")

    def detect(self, settings: Settings) -> bool:
        return _probe(f"{self.host(settings)}{self.probe_path}")


class KeyProvider(Provider):
    """A cloud API authenticated by an API key."""

    def detect(self, settings: Settings) -> bool:
        # Key presence only; no network call
        return bool(resolve_api_key(settings, self.name))

    def check_credentials(self, settings: Settings) -> None:
        if not resolve_api_key(settings, self.name):
            raise MissingAPIKeyError(self.name)


class OllamaProvider(HostProvider):
    name = "ollama"
    probe_path = "/api/tags"

    def completion_kwargs(self, settings: Settings) -> Dict[str, Any]:
        return {
            "model": f"ollama_chat/{settings.models[self.name]}",
            "api_base": self.host(settings),
        }


class LMStudioProvider(HostProvider):
    name = "lmstudio"
    probe_path = "/v1/models"

    def completion_kwargs(self, settings: Settings) -> Dict[str, Any]:
        # OpenAI-compatible server; the key is required by the client but unused
        return {
            "model": f"openai/{settings.models[self.name]}",
            "api_base": f"{self.host(settings)}/v1",
            "api_key": "lm-studio",
        }


class OpenAIProvider(KeyProvider):
    name = "openai"

    def completion_kwargs(self, settings: Settings) -> Dict[str, Any]:
        return {
            "model": f"openai/{settings.models[self.name]}",
            "api_key": resolve_api_key(settings, self.name),
        }


class OpenRouterProvider(KeyProvider):
    name = "openrouter"

    def completion_kwargs(self, settings: Settings) -> Dict[str, Any]:
        return {
            "model": f"openrouter/{settings.models[self.name]}",
            "api_key": resolve_api_key(settings, self.name),
        }


PROVIDERS: List[Provider] = [
    OllamaProvider(),
    LMStudioProvider(),
    OpenAIProvider(),
    OpenRouterProvider(),
]
PROVIDER_MAP: Dict[str, Provider] = {p.name: p for p in PROVIDERS}


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def build_system_prompt(settings: Settings) -> str:
    return settings.system_prompt or DEFAULT_SYSTEM_PROMPT


def detect_provider(settings: Settings) -> Optional[str]:
    """Return the name of the first provider that detects as available."""
    for provider in PROVIDERS:
        if provider.detect(settings):
            return provider.name
    return None


def refine_intention(user_input: str, settings: Settings) -> RefineResult:
    """Rewrite the user's intention into the three-line template.

    Raises:
        MissingAPIKeyError: explicit key-based provider with no key.
        ProviderRequestError: explicit provider request failed.
        NoProviderAvailableError: auto mode found nothing that works.
    """
    system_prompt = build_system_prompt(settings)

    if settings.provider != AUTO:
        provider = PROVIDER_MAP[settings.provider]
        provider.check_credentials(settings)
        try:
            refined = provider.generate(settings, system_prompt, user_input)
        except Exception as e:
            raise ProviderRequestError(provider.name, e) from e
        return RefineResult(refined, provider.label)

    for provider in PROVIDERS:
        if not provider.detect(settings):
            logger.debug("%s not detected, trying next provider", provider.display)
            continue

        logger.info("Detected %s", provider.display)
        try:
            refined = provider.generate(settings, system_prompt, user_input)
        except Exception as e:
            logger.warning("%s refinement failed: %s", provider.display, e)
            continue
        return RefineResult(refined, provider.label)

    raise NoProviderAvailableError()

"""Configuration display and the interactive `today config` editor."""

from typing import Any, Dict, List

import click

from today.models import fetch_models_for_provider
from today.settings import (
    AUTO,
    PROVIDER_CHOICES,
    PROVIDER_INFO,
    PROVIDER_ORDER,
    Settings,
    mask_secret,
    providers_to_show,
    resolve_api_key,
    save_config,
    set_setting,
)
from today.setup import describe_choice, prompt_menu

ADVANCED_SETTINGS: Dict[str, Dict[str, Any]] = {
    "ollama-host": {
        "path": ("hosts", "ollama"),
        "message": "Ollama host URL",
    },
    "lmstudio-host": {
        "path": ("hosts", "lmstudio"),
        "message": "LM Studio host URL",
    },
    "openai-key": {
        "path": ("api_keys", "openai"),
        "message": "OpenAI API key",
        "secret": True,
    },
    "openrouter-key": {
        "path": ("api_keys", "openrouter"),
        "message": "OpenRouter API key",
        "secret": True,
    },
    "output-file": {
        "path": ("output_file",),
        "message": "Output file path",
    },
    "system-prompt": {
        "path": ("system_prompt",),
        "message": "System prompt",
    },
}

_ACTIONS = [
    ("view", "View current configuration"),
    ("provider", "Change provider"),
    ("model", "Change model"),
    ("advanced", "Advanced settings (hosts, API keys, output file, system prompt)"),
    ("exit", "Exit"),
]


def get_setting(settings: Settings, path) -> Any:
    value: Any = settings.model_dump()
    for key in path:
        value = value.get(key) if isinstance(value, dict) else None
    return value


# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------

def _key_status(settings: Settings, provider: str) -> str:
    key = resolve_api_key(settings, provider)
    if not key:
        return "not set"
    source = "settings" if settings.api_keys.get(provider) else "env"
    return f"configured ({mask_secret(key)}, {source})"


def format_config(settings: Settings) -> List[str]:
    """Render the configuration as display lines. Keys are masked."""
    lines = [f"Provider:      {settings.provider}"]

    if settings.provider == AUTO:
        lines.append("Models:")
        for p in PROVIDER_ORDER:
            lines.append(f"  {p:12s} {settings.models.get(p, '')}")
    else:
        lines.append(f"Model:         {settings.models.get(settings.provider, '')}")

    for p in providers_to_show(settings):
        info = PROVIDER_INFO[p]
        if info["has_host"]:
            lines.append(f"{info['display'] + ' host:':15s}{settings.hosts.get(p, '')}")
        if info["has_api_key"]:
            lines.append(f"{info['display'] + ' key:':15s}{_key_status(settings, p)}")

    lines.append(f"Output file:   {settings.output_file}")
    lines.append(f"System prompt: {'custom' if settings.system_prompt else 'default'}")
    return lines


def show_config(settings: Settings):
    click.echo("\nCurrent Configuration")
    click.echo("-" * 40)
    for line in format_config(settings):
        click.echo(line)
    click.echo()


# ---------------------------------------------------------------------------
# Editors
# ---------------------------------------------------------------------------

def change_provider(settings: Settings) -> Settings:
    click.echo(f"\nCurrent provider: {settings.provider}\n")
    default = PROVIDER_CHOICES.index(settings.provider) + 1
    idx = prompt_menu(
        "Select provider:",
        [describe_choice(c) for c in PROVIDER_CHOICES],
        default=default,
    )
    provider = PROVIDER_CHOICES[idx]

    settings = set_setting(settings, ("provider",), provider)
    save_config(settings)
    click.echo(f"\nProvider changed to: {provider}\n")

    if click.confirm("Would you like to configure the model for this provider?", default=False):
        settings = change_model(settings)
    return settings


def change_model(settings: Settings) -> Settings:
    """Pick a model for the current provider (or a chosen one under auto)."""
    target = settings.provider
    if target == AUTO:
        idx = prompt_menu(
            "Which provider's model would you like to configure?",
            [PROVIDER_INFO[p]["display"] for p in PROVIDER_ORDER],
        )
        target = PROVIDER_ORDER[idx]

    current = settings.models.get(target, "")
    click.echo(f"\nCurrent {target} model: {current}\n")

    models = fetch_models_for_provider(target, settings) or list(PROVIDER_INFO[target]["common_models"])
    options = models + ["Enter custom model name"]
    default = models.index(current) + 1 if current in models else 1
    idx = prompt_menu(f"Select {target} model:", options, default=default)

    if idx < len(models):
        model = models[idx]
    else:
        model = click.prompt("Enter model name", default=current).strip() or current

    settings = set_setting(settings, ("models", target), model)
    save_config(settings)
    click.echo(f"\n{target} model changed to: {model}\n")
    return settings


def _prompt_value(settings: Settings, key: str) -> Any:
    schema = ADVANCED_SETTINGS[key]
    current = get_setting(settings, schema["path"])

    if key == "system-prompt":
        if not click.confirm("Use custom system prompt?", default=current is not None):
            return None
        return click.prompt(f"Enter {schema['message'].lower()}", default=current or "").strip() or None

    if schema.get("secret"):
        value = click.prompt(
            f"{schema['message']} (leave empty to keep current)",
            hide_input=True,
            default="",
            show_default=False,
        )
        return value.strip() or current

    return click.prompt(schema["message"], default=current).strip() or current


def advanced_settings(settings: Settings) -> Settings:
    keys = list(ADVANCED_SETTINGS)
    idx = prompt_menu(
        "Which setting would you like to change?",
        [ADVANCED_SETTINGS[k]["message"] for k in keys] + ["Back"],
        default=len(keys) + 1,
    )
    if idx >= len(keys):
        return settings

    key = keys[idx]
    value = _prompt_value(settings, key)
    settings = set_setting(settings, ADVANCED_SETTINGS[key]["path"], value)
    save_config(settings)
    click.echo(f"\n{key} updated\n")
    return settings


def run_interactive_config(settings: Settings) -> Settings:
    """Menu loop over the configuration actions. Every change is saved immediately."""
    click.echo("\nConfiguration Manager\n")

    while True:
        idx = prompt_menu(
            "What would you like to do?",
            [label for _, label in _ACTIONS],
            default=len(_ACTIONS),
        )
        action = _ACTIONS[idx][0]

        if action == "exit":
            click.echo("\nExiting configuration\n")
            return settings

        if action == "view":
            show_config(settings)
        elif action == "provider":
            settings = change_provider(settings)
        elif action == "model":
            settings = change_model(settings)
        elif action == "advanced":
            settings = advanced_settings(settings)

        if not click.confirm("Continue configuring?", default=False):
            return settings

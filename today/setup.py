"""Interactive setup wizard for today.

Guides users through provider selection, host URLs, API keys and model
choice on first run or via `today setup`.
"""

from pathlib import Path
from typing import List, Optional, Sequence

import click

from today import settings as settings_store
from today.models import fetch_models_for_provider
from today.settings import (
    AUTO,
    PROVIDER_CHOICES,
    PROVIDER_INFO,
    PROVIDER_ORDER,
    Settings,
    default_settings,
    mask_secret,
    resolve_api_key,
    save_config,
)

_CHOICE_DESCRIPTIONS = {
    AUTO: "recommended, tries local providers first",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def is_first_run() -> bool:
    """Check if today has been configured (i.e. settings.json exists)."""
    return not settings_store.config_exists()


def describe_choice(choice: str) -> str:
    if choice in _CHOICE_DESCRIPTIONS:
        return f"{choice:12s} ({_CHOICE_DESCRIPTIONS[choice]})"
    return f"{choice:12s} ({PROVIDER_INFO[choice]['description']})"


def prompt_menu(title: str, options: Sequence[str], default: int = 1) -> int:
    """Show a numbered menu and return the zero-based index picked.

    Out-of-range or non-numeric answers fall back to ``default``.
    """
    click.echo(title)
    for i, option in enumerate(options, 1):
        click.echo(f"  {i}. {option}")
    raw = click.prompt(f"Select [1-{len(options)}]", default=str(default))
    raw = raw.strip()
    if raw.isdigit() and 1 <= int(raw) <= len(options):
        return int(raw) - 1
    return default - 1


# ---------------------------------------------------------------------------
# Step 1: Welcome
# ---------------------------------------------------------------------------

def print_welcome():
    """Print welcome banner."""
    click.echo()
    click.echo("=" * 56)
    click.echo("  today Setup Wizard")
    click.echo("=" * 56)
    click.echo()
    click.echo("This wizard will help you configure today by:")
    click.echo("  1. Selecting your LLM provider")
    click.echo("  2. Entering host URLs and API keys")
    click.echo("  3. Choosing a model for each provider")
    click.echo()
    click.echo(f"Your configuration will be saved to {settings_store.CONFIG_FILE}")
    click.echo()


# ---------------------------------------------------------------------------
# Step 2: Provider selection
# ---------------------------------------------------------------------------

def prompt_provider_selection(current: Optional[str] = None) -> str:
    """Single-select the provider (or auto) via numbered menu."""
    default = PROVIDER_CHOICES.index(current) + 1 if current in PROVIDER_CHOICES else 1
    idx = prompt_menu(
        "Which LLM provider do you want to use?",
        [describe_choice(c) for c in PROVIDER_CHOICES],
        default=default,
    )
    selected = PROVIDER_CHOICES[idx]
    click.echo(f"\nSelected: {selected}\n")
    return selected


# ---------------------------------------------------------------------------
# Step 3: Hosts, keys and models
# ---------------------------------------------------------------------------

def prompt_host(provider: str, current: str) -> str:
    info = PROVIDER_INFO[provider]
    value = click.prompt(f"    {info['display']} host URL", default=current or info["default_host"])
    return value.strip()


def prompt_api_key(provider: str, existing: str = "") -> str:
    """Prompt for an API key. Returns "" if skipped."""
    info = PROVIDER_INFO[provider]
    if existing:
        click.echo(f"    {info['display']}: API key already configured ({mask_secret(existing)})")
        if not click.confirm("    Update this key?", default=False):
            return existing

    key = click.prompt(
        f"    {info['display']} API key (leave empty to skip)",
        hide_input=True,
        default="",
        show_default=False,
    )
    return key.strip()


def format_model_table(provider: str, models: List[str]) -> str:
    """Format a model selection table for display."""
    lines = [f"\n    {PROVIDER_INFO[provider]['display']} models:"]
    for i, model in enumerate(models, 1):
        lines.append(f"      {i}. {model}")
    return "\n".join(lines)


def prompt_model_selection(provider: str, models: List[str], current: str) -> str:
    """Pick a model from a fetched list, or type one in.

    With no fetched models this is a plain text prompt defaulting to
    ``current``.
    """
    info = PROVIDER_INFO[provider]
    if not models:
        value = click.prompt(f"    {info['display']} model name", default=current)
        return value.strip() or current

    click.echo(format_model_table(provider, models))
    default_idx = str(models.index(current) + 1) if current in models else "c"
    raw = click.prompt(
        f"    Select [1-{len(models)}] or 'c' for a custom name",
        default=default_idx,
    )
    raw = raw.strip().lower()

    if raw.isdigit():
        idx = int(raw) - 1
        if 0 <= idx < len(models):
            return models[idx]

    value = click.prompt(f"    {info['display']} model name", default=current)
    return value.strip() or current


def configure_provider(settings: Settings, provider: str) -> Settings:
    """Prompt for one provider's host, key and model. Mutates and returns settings."""
    info = PROVIDER_INFO[provider]
    click.echo(f"\n  {info['display']}:")

    if info["has_host"]:
        settings.hosts[provider] = prompt_host(provider, settings.hosts.get(provider, ""))

    if info["has_api_key"]:
        key = prompt_api_key(provider, settings.api_keys.get(provider, ""))
        settings.api_keys[provider] = key
        # No key, no model listing and nothing to pick a model for
        if not resolve_api_key(settings, provider):
            click.echo("    Skipped (no API key).")
            return settings

    models = fetch_models_for_provider(provider, settings)
    if models:
        click.echo(f"    {len(models)} models found")
    settings.models[provider] = prompt_model_selection(
        provider, models, settings.models.get(provider) or info["default_model"]
    )
    click.echo(f"    Model: {settings.models[provider]}")
    return settings


# ---------------------------------------------------------------------------
# Step 4: Summary
# ---------------------------------------------------------------------------

def print_summary(settings: Settings, path: Path):
    """Print configuration summary and next steps."""
    click.echo()
    click.echo("=" * 56)
    click.echo("  Setup Complete!")
    click.echo("=" * 56)
    click.echo()
    click.echo("  Configuration:")
    click.echo(f"    Provider:      {settings.provider}")
    if settings.provider != AUTO:
        click.echo(f"    Model:         {settings.models[settings.provider]}")
    click.echo(f"    Output file:   {settings.output_file}")
    click.echo(f"    Config file:   {path}")
    click.echo()
    click.echo("  Next steps:")
    click.echo("    today                  # Refine today's intention")
    click.echo("    today config show      # Check configuration")
    click.echo("    today config           # Change settings")
    click.echo("    today setup            # Re-run this wizard")
    click.echo()


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def run_setup_wizard(existing: Optional[Settings] = None) -> Settings:
    """Run the full interactive setup wizard and save the result."""
    settings = existing.model_copy(deep=True) if existing else default_settings()

    print_welcome()

    settings.provider = prompt_provider_selection(current=settings.provider)

    click.echo("-" * 56)
    click.echo("  Providers")
    click.echo("-" * 56)

    to_configure = PROVIDER_ORDER if settings.provider == AUTO else [settings.provider]
    for provider in to_configure:
        configure_provider(settings, provider)

    click.echo()
    settings.output_file = click.prompt(
        "Output file path", default=settings.output_file
    ).strip() or settings.output_file

    path = save_config(settings)
    click.echo(f"\n  Wrote {path}")

    print_summary(settings, path)
    return settings

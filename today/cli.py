"""today CLI — refine, setup, config and use commands."""

import logging

import click

from today import __version__
from today.settings import AUTO, PROVIDER_CHOICES


def _configure_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="today")
@click.option(
    "--provider", "-p",
    default=None,
    type=click.Choice(PROVIDER_CHOICES),
    help="Override LLM provider for this run (does not save)",
)
@click.option("--model", "-m", default=None, help="Override model for this run (does not save)")
@click.option("--verbose", is_flag=True, help="Enable verbose logging")
@click.pass_context
def main(ctx, provider, model, verbose):
    """today — refine your daily intention with AI."""
    _configure_logging(verbose)

    from dotenv import load_dotenv

    load_dotenv()

    if ctx.invoked_subcommand is None:
        run_today(provider, model)


def run_today(provider, model):
    """Prompt for an intention, refine it and prepend it to the output file."""
    from today.journal import write_today_file
    from today.llm import RefineError, refine_intention
    from today.settings import RuntimeOverrides, apply_overrides, load_config
    from today.setup import is_first_run, run_setup_wizard

    if is_first_run():
        click.echo("No configuration found. Starting setup wizard.")
        settings = run_setup_wizard()
    else:
        settings = load_config()

    overrides = RuntimeOverrides(provider=provider, model=model)
    if not overrides.is_empty():
        settings = apply_overrides(settings, overrides)
        click.echo("\nRuntime overrides active:")
        if provider:
            click.echo(f"   Provider: {provider}")
        if model:
            click.echo(f"   Model:    {model}")
            if settings.provider == AUTO:
                click.echo("   (model ignored: provider is auto)")
        click.echo()

    user_input = click.prompt(
        "What do you want to accomplish today?", default="", show_default=False
    )
    if not user_input.strip():
        click.echo("No input provided. Exiting.")
        return

    try:
        result = refine_intention(user_input, settings)
    except RefineError as e:
        click.echo(f"\nError: {e}", err=True)
        click.echo("\nFile was not created due to the error above.", err=True)
        click.echo("\nTroubleshooting tips:", err=True)
        click.echo("  - Check if the specified model exists in your LLM provider", err=True)
        click.echo("  - Verify that your LLM provider is running", err=True)
        click.echo("  - Review your configuration with: today config show", err=True)
        click.echo("  - Run interactive config: today config", err=True)
        raise SystemExit(1)

    if result.provider:
        click.echo(f"\nRefined with {result.provider}\n")
    click.echo(result.refined)

    try:
        write_today_file(result.refined, settings.output_file)
    except OSError as e:
        click.echo(f"\nError: could not write {settings.output_file}: {e}", err=True)
        raise SystemExit(1)

    click.echo(f"\nSaved to {settings.output_file}")


@main.command()
def setup():
    """Interactive setup wizard — configure provider, hosts, keys and models."""
    from today.settings import load_config
    from today.setup import is_first_run, run_setup_wizard

    run_setup_wizard(existing=None if is_first_run() else load_config())


@main.group(invoke_without_command=True)
@click.pass_context
def config(ctx):
    """Manage configuration (interactive editor without a subcommand)."""
    if ctx.invoked_subcommand is not None:
        return

    from today.config_manager import run_interactive_config
    from today.settings import load_config

    run_interactive_config(load_config())


@config.command(name="show")
@click.option("--detect", is_flag=True, help="Probe providers and report which one auto mode would use")
def config_show(detect):
    """Display current configuration (API keys are masked)."""
    from today import settings as settings_store
    from today.config_manager import show_config
    from today.journal import count_entries, read_today_file
    from today.setup import is_first_run

    settings = settings_store.load_config()
    if is_first_run():
        click.echo("No configuration found; showing defaults. Run 'today setup'.")
    show_config(settings)
    click.echo(f"Config file:   {settings_store.CONFIG_FILE}")
    click.echo(f"Log entries:   {count_entries(read_today_file(settings.output_file))}")

    if detect:
        from today.llm import PROVIDER_MAP, detect_provider

        name = detect_provider(settings)
        detected = PROVIDER_MAP[name].display if name else "none available"
        click.echo(f"Auto-detect:   {detected}")


@main.command()
@click.argument("provider", type=click.Choice(PROVIDER_CHOICES))
def use(provider):
    """Switch the saved provider to PROVIDER."""
    from today.settings import load_config, save_config, set_setting

    settings = set_setting(load_config(), ("provider",), provider)
    save_config(settings)
    click.echo(f"Provider switched to: {provider}")


if __name__ == "__main__":
    main()

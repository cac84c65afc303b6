"""CLI for vibesafu."""

from __future__ import annotations

import asyncio
import json
import sys

import click

from vibesafu import __version__
from vibesafu.config import Settings, config_file_path, get_settings
from vibesafu.hook import create_hook_output, run_hook
from vibesafu.installer import SettingsFileError, install_hook, uninstall_hook
from vibesafu.logging import setup_logging
from vibesafu.user_config import UserConfig, mask_secret


def _load_settings() -> Settings:
    settings = get_settings()
    setup_logging(settings)
    return settings


@click.group()
@click.version_option(__version__, "--version", "-v", prog_name="vibesafu")
def main() -> None:
    """vibesafu: security gate for shell commands requested by Claude Code."""


@main.command()
def install() -> None:
    """Install the security hook into Claude Code settings."""
    settings = _load_settings()
    path = settings.claude_settings_path
    click.echo("Installing vibesafu hook...")
    try:
        changed = install_hook(path, settings.hook_command)
    except SettingsFileError as e:
        click.echo(f"Error: {e}. Fix or remove the file and try again.", err=True)
        sys.exit(1)

    if not changed:
        click.echo("vibesafu hook is already installed.")
        return

    click.echo("vibesafu hook installed successfully!")
    click.echo(f"Settings file: {path}")
    click.echo("\nNext steps:")
    click.echo("  1. Run `vibesafu config` to set up your Anthropic API key")
    click.echo("  2. Restart Claude Code to activate the hook")


@main.command()
def uninstall() -> None:
    """Remove the security hook from Claude Code settings."""
    settings = _load_settings()
    path = settings.claude_settings_path
    click.echo("Uninstalling vibesafu hook...")
    try:
        changed = uninstall_hook(path)
    except SettingsFileError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not changed:
        click.echo("vibesafu hook is not installed.")
        return
    click.echo("vibesafu hook uninstalled successfully!")


@main.command()
def check() -> None:
    """Run the security check (stdin: PermissionRequest JSON)."""
    raw_bytes = click.get_binary_stream("stdin").read()
    try:
        raw_input = raw_bytes.decode("utf-8")
    except UnicodeDecodeError:
        click.echo(json.dumps(create_hook_output("deny", "Invalid input encoding")))
        return

    try:
        settings = _load_settings()
    except Exception as e:
        # Broken configuration must still produce a safe answer on stdout
        output = create_hook_output(
            "deny", f"vibesafu configuration could not be loaded, denying for safety: {e}"
        )
        click.echo(json.dumps(output))
        return

    output = asyncio.run(run_hook(raw_input, settings=settings))
    click.echo(json.dumps(output))


@main.command()
@click.option("--show", is_flag=True, help="Print the current configuration and exit")
@click.option("--api-key", default=None, help="Anthropic API key")
@click.option("--triage-model", default=None, help="Fast model used for first-pass triage")
@click.option("--review-model", default=None, help="Model used for escalated reviews")
@click.option(
    "--triage/--no-triage", "triage_enabled", default=None, help="Enable or disable LLM review"
)
def config(
    show: bool,
    api_key: str | None,
    triage_model: str | None,
    review_model: str | None,
    triage_enabled: bool | None,
) -> None:
    """Configure the Anthropic API key and models."""
    current = UserConfig.load()

    if show:
        click.echo("=== vibesafu configuration ===\n")
        click.echo(f"Config file:  {config_file_path()}")
        click.echo(f"API key:      {mask_secret(current.anthropic_api_key)}")
        click.echo(f"Triage model: {current.triage_model}")
        click.echo(f"Review model: {current.review_model}")
        click.echo(f"LLM review:   {'enabled' if current.triage_enabled else 'disabled'}")
        return

    if api_key is None:
        api_key = click.prompt(
            "Anthropic API key (leave empty to keep the current one)",
            default="",
            hide_input=True,
            show_default=False,
        )
    if api_key:
        current.anthropic_api_key = api_key.strip()
    if triage_model:
        current.triage_model = triage_model
    if review_model:
        current.review_model = review_model
    if triage_enabled is not None:
        current.triage_enabled = triage_enabled

    path = current.save()
    get_settings.cache_clear()
    click.echo(f"Config saved to {path}")
    click.echo(f"  API key: {mask_secret(current.anthropic_api_key)}")
    if not current.anthropic_api_key:
        click.echo(
            "\nNo API key configured: commands that need review will be denied "
            "with an explanation."
        )

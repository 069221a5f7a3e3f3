# src/discord_forwarder/cli.py
"""discord-forwarder command line interface.

Sends a single event through the full pipeline (filter, format, queue,
deliver) and waits for the worker to drain. Useful for checking a webhook
URL and previewing what an event looks like in Discord.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from pydantic import ValidationError

from discord_forwarder import __version__
from discord_forwarder.contracts.enums import Level, MetadataLayout
from discord_forwarder.contracts.events import Event, SpanContext
from discord_forwarder.core.config import ForwarderSettings
from discord_forwarder.errors import ForwarderConfigurationError
from discord_forwarder.forwarder import build

__all__ = ["app"]

app = typer.Typer(
    name="discord-forwarder",
    help="Forward structured log events to Discord webhooks.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"discord-forwarder version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load DISCORD_WEBHOOK_URL and friends from a .env file without overriding the environment."""
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(f"Error: .env file not found: {env_file}", fg=typer.colors.RED, err=True)
            raise typer.Exit(1)
        return load_dotenv(env_file, override=False)

    return load_dotenv(override=False)


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(
        False,
        "--no-dotenv",
        help="Skip loading .env file.",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Path to .env file (skips automatic search).",
        exists=False,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """Forward structured log events to Discord webhooks."""
    from discord_forwarder.core.logging import configure_logging

    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "INFO")

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho("Warning: --env-file ignored because --no-dotenv is set.", fg=typer.colors.YELLOW, err=True)


def _parse_fields(pairs: list[str]) -> dict[str, str]:
    fields: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            typer.echo(f"Error: --field expects key=value, got {pair!r}", err=True)
            raise typer.Exit(2)
        fields[key] = value
    return fields


@app.command()
def send(
    message: str = typer.Argument(..., help="Event message text."),
    level: str = typer.Option("info", "--level", "-l", help="Event level: trace, debug, info, warn, error."),
    target: str = typer.Option("discord_forwarder.cli", "--target", "-t", help="Event target (logger name)."),
    app_name: str = typer.Option("discord-forwarder", "--app-name", "-a", help="Application name for the embed."),
    webhook_url: str | None = typer.Option(
        None,
        "--webhook-url",
        "-w",
        help="Discord webhook URL. Defaults to $DISCORD_WEBHOOK_URL.",
    ),
    field: list[str] = typer.Option([], "--field", "-f", help="Event field as key=value. Repeatable."),
    span_name: str | None = typer.Option(None, "--span", help="Record the event inside a span with this name."),
    layout: MetadataLayout = typer.Option(MetadataLayout.FIELDS, "--layout", help="Field rendering: fields or blob."),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Print the JSON payload instead of sending it."),
) -> None:
    """Send one event to Discord and wait for delivery."""
    try:
        event_level = Level.parse(level)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2) from None

    try:
        settings = ForwarderSettings(app_name=app_name, webhook_url=webhook_url, metadata_layout=layout)
    except ForwarderConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        typer.echo("Configuration errors:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        raise typer.Exit(1) from None

    event = Event(
        target=target,
        level=event_level,
        fields={"message": message, **_parse_fields(field)},
        file=__file__,
        span=SpanContext(name=span_name) if span_name else None,
    )

    forwarder, handle = build(settings)
    if dry_run:
        handle.shutdown()
        typer.echo(json.dumps(forwarder.formatter.format(event).to_payload(), indent=2, ensure_ascii=False))
        return

    if not forwarder.capture(event):
        handle.shutdown()
        typer.echo("Event was not queued.", err=True)
        raise typer.Exit(1)

    handle.shutdown()
    metrics = forwarder.health_metrics
    if metrics["delivered"] != 1:
        typer.echo(f"Delivery failed: {json.dumps(metrics)}", err=True)
        raise typer.Exit(1)
    typer.echo("Delivered.")

# tests/unit/test_cli.py
"""Tests for the discord-forwarder CLI."""

import logging
from collections.abc import Iterator
from pathlib import Path

import httpx
import pytest
import respx
import structlog
from typer.testing import CliRunner

from discord_forwarder import __version__
from discord_forwarder.cli import app

runner = CliRunner()

URL = "https://discord.com/api/webhooks/1/token"


@pytest.fixture(autouse=True)
def restore_logging(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """The CLI reconfigures root logging; put it back after each test."""
    # setenv first so the variable is removed again even if .env loading sets it
    monkeypatch.setenv("DISCORD_WEBHOOK_URL", "")
    monkeypatch.delenv("DISCORD_WEBHOOK_URL")
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


class TestGlobalOptions:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_missing_env_file(self) -> None:
        result = runner.invoke(app, ["--env-file", "/nonexistent/.env", "send", "hi"])
        assert result.exit_code == 1
        assert ".env file not found" in result.output


class TestSendDryRun:
    def test_prints_payload(self) -> None:
        result = runner.invoke(
            app,
            ["--no-dotenv", "send", "db down", "--level", "error", "--webhook-url", URL, "--app-name", "billing", "--dry-run"],
        )

        assert result.exit_code == 0, result.output
        assert '"title": "billing - :x: ERROR"' in result.output
        assert '"description": "db down"' in result.output
        assert "token" not in result.output.split('"embeds"')[1]

    def test_fields_and_span(self) -> None:
        result = runner.invoke(
            app,
            ["--no-dotenv", "send", "hi", "-w", URL, "-f", "user=bob", "--span", "checkout", "--target", "shop", "-n"],
        )

        assert result.exit_code == 0, result.output
        assert '"value": "shop::checkout"' in result.output
        assert '"name": "user"' in result.output
        assert '"value": "bob"' in result.output

    def test_blob_layout(self) -> None:
        result = runner.invoke(app, ["--no-dotenv", "send", "hi", "-w", URL, "-f", "k=v", "--layout", "blob", "-n"])

        assert result.exit_code == 0, result.output
        assert '"name": "Metadata"' in result.output

    def test_webhook_url_from_dotenv(self, tmp_path: Path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text(f"DISCORD_WEBHOOK_URL={URL}\n")

        result = runner.invoke(app, ["--env-file", str(env_file), "send", "hi", "-n"])

        assert result.exit_code == 0, result.output
        assert '"description": "hi"' in result.output


class TestSendErrors:
    def test_unknown_level(self) -> None:
        result = runner.invoke(app, ["--no-dotenv", "send", "hi", "-w", URL, "--level", "loud"])
        assert result.exit_code == 2
        assert "Unknown level" in result.output

    def test_missing_webhook_url(self) -> None:
        result = runner.invoke(app, ["--no-dotenv", "send", "hi"])
        assert result.exit_code == 1
        assert "DISCORD_WEBHOOK_URL" in result.output

    def test_invalid_webhook_url(self) -> None:
        result = runner.invoke(app, ["--no-dotenv", "send", "hi", "-w", "not-a-url"])
        assert result.exit_code == 1
        assert "webhook_url" in result.output

    def test_bad_field_pair(self) -> None:
        result = runner.invoke(app, ["--no-dotenv", "send", "hi", "-w", URL, "-f", "novalue"])
        assert result.exit_code == 2
        assert "key=value" in result.output


class TestSendDelivery:
    @respx.mock
    def test_delivered(self) -> None:
        route = respx.post(URL).mock(return_value=httpx.Response(204))

        result = runner.invoke(app, ["--no-dotenv", "send", "hello", "-w", URL])

        assert result.exit_code == 0, result.output
        assert "Delivered." in result.output
        assert route.call_count == 1

    @respx.mock
    def test_rejected_status_fails(self) -> None:
        respx.post(URL).mock(return_value=httpx.Response(400, json={"message": "Invalid Form Body"}))

        result = runner.invoke(app, ["--no-dotenv", "send", "hello", "-w", URL])

        assert result.exit_code == 1
        assert "Delivery failed" in result.output

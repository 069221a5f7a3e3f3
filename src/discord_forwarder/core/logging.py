# src/discord_forwarder/core/logging.py
"""Logging setup shared by the CLI and by applications embedding the forwarder.

structlog events are handed to stdlib logging with their event dict as the
record's ``msg``. Every root handler sees the same records: the console
handler renders them, and a DiscordHandler passed in ``extra_handlers`` turns
them into Events.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import ProcessorFormatter

# httpx/httpcore log each webhook POST at DEBUG
_HTTP_CLIENT_LOGGERS: tuple[str, ...] = ("httpx", "httpcore")


def configure_logging(
    *,
    json_output: bool = False,
    level: str = "INFO",
    extra_handlers: tuple[logging.Handler, ...] = (),
) -> None:
    """Configure structlog and the root logger.

    Args:
        json_output: Render console output as JSON lines instead of colored text.
        level: Root log level name, e.g. "DEBUG".
        extra_handlers: Root handlers installed next to the console handler,
            typically a DiscordHandler.
    """
    log_level = getattr(logging, level.upper())

    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]

    renderer: Any = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=True)
    render_chain: list[Any] = [ProcessorFormatter.remove_processors_meta]
    if json_output:
        render_chain.append(structlog.processors.format_exc_info)
    render_chain.append(renderer)

    structlog.configure(
        processors=[structlog.stdlib.add_logger_name, *pre_chain, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfigured per CLI invocation and per test
        cache_logger_on_first_use=False,
    )

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(ProcessorFormatter(processors=render_chain, foreign_pre_chain=pre_chain))

    root = logging.getLogger()
    root.handlers = [console, *extra_handlers]
    root.setLevel(log_level)

    for name in _HTTP_CLIENT_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

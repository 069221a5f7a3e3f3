"""Enclosing context for captured events.

A span is a named scope whose fields are attached to every event recorded
inside it. The active span is tracked in a ContextVar, so it follows the
current thread and asyncio task without any global registry.

Span hierarchy:
    with span("handle_request", request_id="r-1"):
        with span("load_user", user_id=42):
            log.warning("slow query")   # span "load_user", fields
                                        # request_id="r-1", user_id=42

A nested span inherits its parent's fields; its own fields win on key
collision.
"""

import functools
import inspect
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, TypeVar

from discord_forwarder.contracts.events import SpanContext

F = TypeVar("F", bound=Callable[..., Any])

_current_span: ContextVar[SpanContext | None] = ContextVar("discord_forwarder_span", default=None)


def current_span() -> SpanContext | None:
    """Return the innermost active span, if any."""
    return _current_span.get()


@contextmanager
def span(name: str, **fields: Any) -> Iterator[SpanContext]:
    """Enter a span for the duration of the block.

    Example:
        with span("import_batch", batch_id=batch.id):
            process(batch)
    """
    parent = _current_span.get()
    merged = {**parent.fields, **fields} if parent is not None else fields
    context = SpanContext(name=name, fields=merged)
    token = _current_span.set(context)
    try:
        yield context
    finally:
        _current_span.reset(token)


def instrument(func: F | None = None, *, name: str | None = None, skip: tuple[str, ...] = ()) -> Any:
    """Run a function inside a span named after it, recording its arguments.

    Works for plain and ``async`` functions. Arguments listed in ``skip``
    (and ``self``/``cls``) are not recorded.

    Example:
        @instrument
        async def create_user(user_id: int) -> None:
            ...
    """

    def decorate(fn: F) -> F:
        span_name = name or fn.__name__
        signature = inspect.signature(fn)
        skipped = {"self", "cls", *skip}

        def span_fields(args: tuple[Any, ...], kwargs: dict[str, Any]) -> dict[str, Any]:
            try:
                bound = signature.bind(*args, **kwargs)
            except TypeError:
                # Let the call itself raise the argument error
                return {}
            bound.apply_defaults()
            return {key: value for key, value in bound.arguments.items() if key not in skipped}

        if inspect.iscoroutinefunction(fn):

            @functools.wraps(fn)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with span(span_name, **span_fields(args, kwargs)):
                    return await fn(*args, **kwargs)

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            with span(span_name, **span_fields(args, kwargs)):
                return fn(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    if func is not None:
        return decorate(func)
    return decorate

# src/discord_forwarder/errors.py
"""Forwarder-specific exceptions.

Configuration errors are raised at construction time. Nothing in this module
is ever raised across the capture path: delivery failures are logged by the
worker, never surfaced to the code that emitted the event.
"""


class ForwarderError(Exception):
    """Base class for discord-forwarder errors."""


class ForwarderConfigurationError(ForwarderError):
    """Raised when the forwarder cannot be constructed from its configuration.

    Examples: no webhook URL given and none in the environment, or a filter
    pattern that does not compile.
    """


class DeliveryFailedError(ForwarderError):
    """Raised inside the worker when a message exhausts its delivery attempts.

    Attributes:
        attempts: Number of attempts made
        last_error: The transport error from the final attempt
    """

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Delivery failed after {attempts} attempts: {last_error}")

class MessengerError(Exception):
    """Base class for errors raised by the messenger core."""


class PreconditionViolation(MessengerError, AssertionError):
    """
    Raised when a direct send starts while the endpoint is connected and
    the queue still holds messages.

    This is a logic error in the surrounding integration (typically a send
    issued while a drain is still in progress) and is never recovered from.
    """


class MissingHandlerError(MessengerError, RuntimeError):
    """Raised when a transport hook is required but has not been installed."""


class ReservedEventError(MessengerError, ValueError):
    """Raised when application code tries to produce a reserved event name."""


class DrainError(MessengerError):
    """
    Raised by `Endpoint.connected()` when the queue could not be flushed.

    The failing message and everything queued behind it are kept, in order,
    for the next drain. The original transport failure is available as
    `__cause__`.
    """

    def __init__(self, remaining: int) -> None:
        super().__init__(f"Queue drain aborted, {remaining} message(s) kept")
        self.remaining = remaining

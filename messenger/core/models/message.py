from dataclasses import dataclass, asdict
from typing import Any, Awaitable, Callable


WireMessage = Any
"""
Serialized form of a message. Opaque to the endpoint: it is produced by the
serializer and handed untouched to the transport (bytes for the shipped
serializers).
"""


@dataclass(frozen=True)
class Envelope:
    """
    A decoded inbound message, as carried by the reserved `delivered` event.
    """
    event: str
    """
    Event name, e.g. "ping", "state", "error"
    """

    payload: tuple[Any, ...]
    """
    Positional payload passed to the listeners of `event`
    """

    def to_dict(self) -> dict[str, Any]:
        """Return a plain dictionary representation of the envelope."""
        return asdict(self)


SendHandler = Callable[[WireMessage], Awaitable[Any] | Any]
"""
Transport hook delivering one serialized message. It may be a plain function
or a coroutine function; a raised exception is a transport failure.
"""


DisconnectHandler = Callable[[], Awaitable[Any] | Any]
"""
Transport hook requesting the connection to be torn down.
"""


Listener = Callable[..., Awaitable[Any] | Any]
"""
Callable registered for an event name. It receives the event payload as
positional arguments and may return an awaitable.
"""

from typing import Protocol, Any

from messenger.core.models.message import WireMessage


class EventSerializer(Protocol):
    """
    Defines the interface for encoding/decoding the events exchanged
    by an Endpoint.

    Implementations must be:
    - deterministic
    - pure (no side effects)
    - explicit about failures: malformed input raises, it is never
      silently turned into a different event
    """

    def serialize(self, event: str, *payload: Any) -> WireMessage:
        """Encode an event name and its payload into a wire message."""

    def deserialize(self, data: WireMessage) -> tuple[Any, ...]:
        """Decode a wire message into `(event, *payload)`."""

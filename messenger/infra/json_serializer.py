import json
from typing import Any

from messenger.core.ports.serializer import EventSerializer


class JsonSerializer(EventSerializer):
    """
    JSON implementation of the EventSerializer interface, for peers that
    cannot speak msgpack. Same `[event, *payload]` shape, UTF-8 encoded.
    """
    def serialize(self, event: str, *payload: Any) -> bytes:
        return json.dumps([event, *payload], separators=(",", ":")).encode()

    def deserialize(self, data: bytes) -> tuple[Any, ...]:
        decoded = json.loads(data.decode())
        if not isinstance(decoded, list) or not decoded:
            raise ValueError("expected a non-empty JSON array")
        if not isinstance(decoded[0], str):
            raise ValueError("event name must be a string")
        return tuple(decoded)

import msgpack
from typing import Any

from messenger.core.ports.serializer import EventSerializer


class MsgPackSerializer(EventSerializer):
    """
    MsgPack-based implementation of the EventSerializer interface.

    An event travels as a single msgpack array `[event, *payload]`:
    - compact binary encoding, bytes payloads kept as bytes
    - tuples come back as lists
    - anything that is not an array headed by a string is rejected
    """
    def serialize(self, event: str, *payload: Any) -> bytes:
        return msgpack.packb([event, *payload], use_bin_type=True)

    def deserialize(self, data: bytes) -> tuple[Any, ...]:
        decoded = msgpack.unpackb(data, raw=False)
        if not isinstance(decoded, list) or not decoded:
            raise ValueError("expected a non-empty msgpack array")
        if not isinstance(decoded[0], str):
            raise ValueError("event name must be a string")
        return tuple(decoded)

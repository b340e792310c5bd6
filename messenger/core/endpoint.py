import logging
from collections import deque
from typing import Any, Callable

from messenger.core.errors import (
    DrainError,
    MissingHandlerError,
    PreconditionViolation,
    ReservedEventError,
)
from messenger.core.events import ListenerRegistry
from messenger.core.helpers.utils import maybe_await
from messenger.core.models.message import (
    DisconnectHandler,
    Envelope,
    Listener,
    SendHandler,
    WireMessage,
)
from messenger.core.ports.serializer import EventSerializer

DELIVERED = "delivered"
"""
Reserved event emitted after every successful inbound dispatch, carrying the
decoded `Envelope`. Application code may listen to it but never produce it.
"""


class Endpoint:
    """
    Connection-agnostic message endpoint.

    The Endpoint turns logical events (an event name plus positional payload)
    into wire messages and back, independently of whether a transport is
    currently attached. The transport is an external collaborator: it installs
    a send hook and a disconnect hook, reports `connected()` /
    `disconnected()`, and feeds inbound data to `receive_message()`.

    Outbound, `send()` serializes the event and hands it to the send hook
    when connected, or appends it to an in-memory FIFO queue otherwise. The
    queue is drained, in order, as soon as the transport reports
    `connected()`. `try_send()` is the best-effort variant: while
    disconnected the event is dropped instead of queued, which suits
    messages that are worthless once stale (heartbeats, notifications).

    Inbound, `receive_message()` deserializes the data, dispatches the
    payload to the listeners registered for the event name and then emits
    the reserved `delivered` event.

    Serialization and deserialization failures never escape the endpoint:
    they are logged and the message is dropped. Transport failures, missing
    hooks and broken preconditions are raised to the caller.

    All methods must be called from the event loop thread. Queue and state
    mutations happen between suspension points, so they are atomic with
    respect to other tasks on that loop.
    """

    def __init__(
        self,
        *,
        serialize: Callable[..., WireMessage],
        deserialize: Callable[[WireMessage], Any],
        send: SendHandler | None = None,
        disconnect: DisconnectHandler | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._serialize = serialize
        self._deserialize = deserialize
        self._send = send
        self._disconnect = disconnect

        self._connected = False
        self._address: str | None = None
        self._queue: deque[WireMessage] = deque()

        self._logger = logger or logging.getLogger("core.endpoint")
        self._listeners = ListenerRegistry(self._logger)

    @classmethod
    def from_serializer(cls, serializer: EventSerializer, **kwargs: Any) -> "Endpoint":
        return cls(
            serialize=serializer.serialize,
            deserialize=serializer.deserialize,
            **kwargs
        )

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def pending(self) -> int:
        """Number of messages waiting in the queue for the next drain."""
        return len(self._queue)

    def get_address_description(self) -> str | None:
        return self._address

    def set_address_description(self, description: str | None) -> None:
        self._address = description

    def set_send_handler(self, handler: SendHandler | None) -> None:
        self._send = handler

    def set_disconnect_handler(self, handler: DisconnectHandler | None) -> None:
        self._disconnect = handler

    def on(self, event: str, listener: Listener | None = None) -> Any:
        return self._listeners.on(event, listener)

    def once(self, event: str, listener: Listener | None = None) -> Any:
        return self._listeners.once(event, listener)

    def off(self, event: str, listener: Listener) -> None:
        self._listeners.off(event, listener)

    async def connected(self, description: str | None = None) -> None:
        """
        Mark the transport as ready and flush the queue through the send hook.

        If `description` is given it replaces the stored address description.
        Calling this while already connected only re-runs an empty drain.
        """
        self._connected = True
        if description is not None:
            self._address = description

        self._logger.debug(
            f"{self._who()} - Connected, {len(self._queue)} queued message(s)",
            extra={"address": self._address}
        )
        await self._drain()

    def disconnected(self) -> None:
        """
        Mark the transport as lost. The queue and the listeners are kept;
        subsequent guaranteed sends are queued until the next `connected()`.
        """
        self._logger.debug(f"{self._who()} - Disconnected", extra={"address": self._address})
        self._connected = False
        self._address = None

    async def disconnect(self) -> None:
        """
        Ask the transport to close the connection.

        The state is left untouched: it changes when the transport reports
        `disconnected()`.
        """
        if self._disconnect is None:
            raise MissingHandlerError("No disconnect handler installed")

        await maybe_await(self._disconnect)

    def prepare(self, event: str, *payload: Any) -> WireMessage | None:
        """
        Serialize an event into a wire message.

        Returns None, after logging the error, when the serializer fails.
        """
        self._check_event(event)

        try:
            return self._serialize(event, *payload)
        except Exception as exc:
            self._logger.error(
                f"{self._who()} - Failed to serialize '{event}': {exc}",
                exc_info=exc,
                extra={"address": self._address}
            )
            return None

    async def send(self, event: str, *payload: Any) -> bool:
        """
        Guaranteed send: deliver now when connected, queue otherwise.

        Returns False when the event was dropped because it could not be
        serialized, True once it has been sent or queued.
        """
        message = self.prepare(event, *payload)
        if message is None:
            return False

        await self.send_prepared(message)
        return True

    async def send_prepared(self, message: WireMessage) -> None:
        if not self._connected:
            self._queue.append(message)
            return

        if self._queue:
            raise PreconditionViolation(
                f"Direct send while {len(self._queue)} queued message(s) "
                "are still waiting to be drained"
            )

        await self._deliver(message)

    async def try_send(self, event: str, *payload: Any) -> bool:
        """
        Best-effort send: deliver now when connected, drop otherwise.

        Returns True only if the event was handed to the transport.
        """
        self._check_event(event)
        if not self._connected:
            return False

        message = self.prepare(event, *payload)
        if message is None:
            return False

        return await self.try_send_prepared(message)

    async def try_send_prepared(self, message: WireMessage) -> bool:
        if not self._connected:
            return False

        if self._queue:
            raise PreconditionViolation(
                f"Direct send while {len(self._queue)} queued message(s) "
                "are still waiting to be drained"
            )

        await self._deliver(message)
        return True

    async def receive_message(self, data: WireMessage) -> bool:
        """
        Decode inbound data and dispatch it to the listeners of its event.

        Undecodable data is logged and discarded: no listener runs and no
        `delivered` event is emitted. Returns True when the message was
        dispatched.
        """
        try:
            event, *payload = self._deserialize(data)
            if not isinstance(event, str):
                raise TypeError(f"event name must be a string, got {type(event).__name__}")
            if event == DELIVERED:
                raise ReservedEventError(f"'{DELIVERED}' is a reserved event name")
        except Exception as exc:
            self._logger.error(
                f"{self._who()} - Failed to deserialize {data!r}: {exc}",
                extra={"address": self._address}
            )
            return False

        await self._listeners.emit(event, *payload)
        await self._listeners.emit(DELIVERED, Envelope(event, tuple(payload)))
        return True

    async def _deliver(self, message: WireMessage) -> None:
        if self._send is None:
            raise MissingHandlerError("No send handler installed")

        await maybe_await(self._send, message)

    async def _drain(self) -> None:
        if not self._connected or not self._queue:
            return

        if self._send is None:
            self.disconnected()
            raise MissingHandlerError(
                f"No send handler installed, {len(self._queue)} message(s) kept"
            )

        # an entry leaves the queue only once the transport accepted it
        while self._connected and self._queue:
            try:
                await maybe_await(self._send, self._queue[0])
            except Exception as exc:
                self._logger.error(
                    f"{self._who()} - Drain aborted: {exc}",
                    extra={"address": self._address}
                )
                self.disconnected()
                raise DrainError(len(self._queue)) from exc

            self._queue.popleft()

    @staticmethod
    def _check_event(event: str) -> None:
        if event == DELIVERED:
            raise ReservedEventError(f"'{DELIVERED}' is a reserved event name")

    def _who(self) -> str:
        return self._address or "<unknown>"

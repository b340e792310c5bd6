import asyncio
import contextlib
import logging
import struct

from messenger.core.endpoint import Endpoint
from messenger.core.errors import DrainError
from messenger.core.throttling.backoff import ExponentialBackoff


class StreamTransport:
    """
    Carries the messages of one Endpoint over a TCP connection.

    The transport is the Endpoint's connection collaborator: once the TCP
    stream is open it installs its send and disconnect hooks on the endpoint
    and reports `connected()`, which flushes whatever was queued meanwhile.
    Every inbound frame is handed to `receive_message()`. When the stream is
    lost the endpoint is told `disconnected()` and a new connection is
    attempted, pacing failed attempts with an ExponentialBackoff.

    Frames use a 4‑byte big‑endian length prefix followed by the serialized
    message. A frame announcing more than `max_message_size` bytes closes the
    connection.

    `close()` is terminal: the run loop exits and no reconnection is
    attempted. It is installed as the endpoint's disconnect hook, so
    `endpoint.disconnect()` shuts the transport down.
    """

    def __init__(
        self,
        endpoint: Endpoint,
        host: str,
        port: int,
        backoff: ExponentialBackoff | None = None,
        max_message_size: int = 1 * 1024 * 1024,
        description: str | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._host = host
        self._port = port
        self._backoff = backoff or ExponentialBackoff()
        self._max_message_size = max_message_size
        self._description = description or self.address

        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._stop = asyncio.Event()

        self._logger = logging.getLogger("infra.stream_transport")

    @property
    def address(self) -> str:
        return f"{self._host}:{self._port}"

    @property
    def closed(self) -> bool:
        return self._stop.is_set()

    async def run(self) -> None:
        """
        Connect, serve and reconnect until `close()` is called or the
        backoff runs out of retries.
        """
        while not self.closed:
            if not await self._open():
                break

            try:
                await self._endpoint.connected(self._description)
                await self._read_loop()
            except DrainError as ex:
                self._logger.warning(f"{self.address} - {ex}, reconnecting")
            finally:
                await self._drop()

        self._logger.debug(f"{self.address} - Transport stopped")

    async def write(self, message: bytes) -> None:
        """Send hook: write one length-prefixed frame and wait for the buffer."""
        if self._writer is None:
            raise ConnectionError(f"Not connected to {self.address}")

        frame = struct.pack("!I", len(message)) + message
        self._writer.write(frame)
        await self._writer.drain()

    def close(self) -> None:
        """
        Stop the transport. Safe to call multiple times, including from a
        listener running inside the read loop.
        """
        self._stop.set()
        if self._writer is not None:
            self._writer.close()

    async def _open(self) -> bool:
        while not self.closed:
            try:
                self._reader, self._writer = await asyncio.open_connection(
                    host=self._host,
                    port=self._port,
                )
            except OSError as ex:
                if self._backoff.exhausted:
                    self._logger.error(
                        f"Giving up on {self.address} after "
                        f"{self._backoff.attempts} retries: {ex}"
                    )
                    return False

                delay = self._backoff.next_delay()
                self._logger.warning(
                    f"Connect failed to {self.address}: {ex}. "
                    f"Retrying in {delay:.1f}s"
                )
                with contextlib.suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(self._stop.wait(), timeout=delay)
                continue

            self._backoff.reset()
            self._endpoint.set_send_handler(self.write)
            self._endpoint.set_disconnect_handler(self.close)
            self._logger.info(f"Connected to {self.address}")
            return True

        return False

    async def _read_loop(self) -> None:
        try:
            while not self.closed:
                header = await self._reader.readexactly(4)
                length = struct.unpack("!I", header)[0]
                if length > self._max_message_size:
                    self._logger.warning(
                        f"{self.address} - Message too large ({length} bytes), "
                        "closing connection"
                    )
                    return

                payload = await self._reader.readexactly(length)
                await self._endpoint.receive_message(payload)
        except (asyncio.IncompleteReadError, ConnectionError):
            self._logger.info(f"Peer {self.address} disconnected")

    async def _drop(self) -> None:
        self._endpoint.disconnected()
        self._endpoint.set_send_handler(None)

        writer, self._writer, self._reader = self._writer, None, None
        if writer is None:
            return

        writer.close()
        try:
            await writer.wait_closed()
        except (ConnectionError, OSError) as ex:
            self._logger.debug(f"{self.address} - Error while closing: {ex}")

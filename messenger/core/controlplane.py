import asyncio
import contextlib
import itertools
import logging
import time

from messenger.core.endpoint import Endpoint
from messenger.core.helpers.spawn import TaskSpawner
from messenger.infra.stream_transport import StreamTransport


class ControlPlane:
    """
    Runs a messenger process: the transport loop feeding the endpoint and,
    when enabled, a best-effort heartbeat.

    Heartbeats are sent with `try_send()`: a `ping` produced while the peer is
    unreachable is meaningless once the connection comes back, so it is
    dropped rather than queued.
    """

    def __init__(
        self,
        endpoint: Endpoint,
        transport: StreamTransport,
        heartbeat_interval: float = 5.0,
        timeout_graceful_shutdown: float = 5.0,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._transport = transport
        self._heartbeat_interval = heartbeat_interval
        self._timeout_graceful_shutdown = timeout_graceful_shutdown
        self._loop = loop or self._create_event_loop()
        self._spawner = TaskSpawner(loop=self._loop)
        self._logger = logging.getLogger("core.controlplane")

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    async def start(self, stop_event: asyncio.Event) -> None:
        transport_task = self._spawner.spawn(self._transport.run(), name="transport")
        # a transport that gave up or was closed ends the process
        transport_task.add_done_callback(lambda _: stop_event.set())
        if self._heartbeat_interval > 0:
            self._spawner.spawn(self.heartbeat(stop_event), name="heartbeat")

        await stop_event.wait()
        self._logger.info("Stopping messenger")

        self._transport.close()
        await self._spawner.shutdown(self._timeout_graceful_shutdown)

    async def heartbeat(self, stop_event: asyncio.Event) -> None:
        for seq in itertools.count():
            if stop_event.is_set():
                break

            # a drain still in progress owns the transport
            if self._endpoint.pending:
                sent = False
            else:
                try:
                    sent = await self._endpoint.try_send("ping", seq, time.time())
                except ConnectionError as ex:
                    self._logger.warning(f"Heartbeat {seq} failed: {ex}")
                    sent = False

            if not sent:
                self._logger.debug(f"Heartbeat {seq} not sent")

            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout=self._heartbeat_interval)

    @staticmethod
    def _create_event_loop() -> asyncio.AbstractEventLoop:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        return loop

import asyncio


class FakeTransport:
    """
    In-memory transport collaborator for an Endpoint.

    It records every message handed to `send` and every disconnect request.
    `fail_after` makes `send` raise ConnectionResetError once that many
    messages have been accepted. `suspend` turns `send` into a coroutine that
    yields to the event loop before recording.
    """

    def __init__(self, fail_after: int | None = None, suspend: bool = False) -> None:
        self.sent: list[bytes] = []
        self.disconnects = 0
        self.fail_after = fail_after
        self.suspend = suspend

    def send(self, message: bytes):
        if self.suspend:
            return self._send_later(message)
        self._record(message)
        return None

    def disconnect(self) -> None:
        self.disconnects += 1

    async def _send_later(self, message: bytes) -> None:
        await asyncio.sleep(0)
        self._record(message)

    def _record(self, message: bytes) -> None:
        if self.fail_after is not None and len(self.sent) >= self.fail_after:
            raise ConnectionResetError("peer reset")
        self.sent.append(message)

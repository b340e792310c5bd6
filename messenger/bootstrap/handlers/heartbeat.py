import logging
import time

from messenger.bootstrap.deps import get_endpoint
from messenger.core.endpoint import DELIVERED
from messenger.core.models.message import Envelope


endpoint = get_endpoint()
logger = logging.getLogger("bootstrap.handlers.heartbeat")


@endpoint.on("ping")
async def ping(seq: int, sent_at: float | None = None) -> None:
    # a pong is only useful to the peer that is listening right now
    await endpoint.try_send("pong", seq, sent_at)


@endpoint.on("pong")
def pong(seq: int, sent_at: float | None = None) -> None:
    if sent_at is not None:
        logger.debug(f"pong {seq}: round trip {(time.time() - sent_at) * 1000:.1f}ms")


@endpoint.on(DELIVERED)
def delivered(envelope: Envelope) -> None:
    logger.debug(f"{endpoint.get_address_description()} - Delivered {envelope.to_dict()}")

import json
from functools import lru_cache

from pydantic import ValidationError

from messenger.bootstrap.config.settings import MessengerConfig
from messenger.core.controlplane import ControlPlane
from messenger.core.endpoint import Endpoint
from messenger.core.ports.serializer import EventSerializer
from messenger.core.throttling.backoff import ExponentialBackoff
from messenger.infra.json_serializer import JsonSerializer
from messenger.infra.msgpack_serializer import MsgPackSerializer
from messenger.infra.stream_transport import StreamTransport


SERIALIZERS: dict[str, type[EventSerializer]] = {
    "msgpack": MsgPackSerializer,
    "json": JsonSerializer,
}


@lru_cache
def get_cp() -> ControlPlane:
    config = get_config()
    return ControlPlane(
        endpoint=get_endpoint(),
        transport=get_transport(),
        heartbeat_interval=config.heartbeat_interval,
        timeout_graceful_shutdown=config.timeout_graceful_shutdown,
    )


@lru_cache
def get_endpoint() -> Endpoint:
    return Endpoint.from_serializer(get_serializer())


@lru_cache
def get_serializer() -> EventSerializer:
    return SERIALIZERS[get_config().codec]()


@lru_cache
def get_transport() -> StreamTransport:
    config = get_config()
    reconnect = config.reconnect
    backoff = ExponentialBackoff(
        initial=reconnect.initial,
        maximum=reconnect.maximum,
        factor=reconnect.factor,
        jitter=reconnect.jitter,
        max_retries=reconnect.max_retries,
    )

    return StreamTransport(
        endpoint=get_endpoint(),
        host=config.peer.host,
        port=config.peer.port,
        backoff=backoff,
        max_message_size=config.max_message_size,
        description=config.address_description,
    )


@lru_cache
def get_config() -> MessengerConfig:
    try:
        return MessengerConfig()
    except ValidationError as ex:
        msg = ["Configuration validation failed:"]
        errs = json.loads(ex.json())
        for err in errs:
            msg.append(f"  {'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}")
        raise SystemExit("\n".join(msg))

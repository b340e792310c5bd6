import logging

import pytest

from tests.fake.fake_transport import FakeTransport

from messenger.core.endpoint import Endpoint
from messenger.core.errors import MissingHandlerError, PreconditionViolation, ReservedEventError


@pytest.mark.ut
@pytest.mark.asyncio
async def test_send_while_disconnected_queues(endpoint, transport):
    assert await endpoint.send("ping", 1) is True
    assert await endpoint.send("ping", 2) is True

    assert transport.sent == []
    assert endpoint.pending == 2


@pytest.mark.ut
@pytest.mark.asyncio
async def test_send_while_connected_goes_to_transport(endpoint, transport, serializer):
    await endpoint.connected("peerA")
    await endpoint.send("ping", {"n": 1})

    assert transport.sent == [serializer.serialize("ping", {"n": 1})]
    assert endpoint.pending == 0


@pytest.mark.ut
@pytest.mark.asyncio
async def test_send_awaits_async_transport(serializer):
    transport = FakeTransport(suspend=True)
    endpoint = Endpoint.from_serializer(serializer, send=transport.send)
    await endpoint.connected("peerA")
    await endpoint.send("ping", 1)

    assert transport.sent == [serializer.serialize("ping", 1)]


@pytest.mark.ut
@pytest.mark.asyncio
async def test_send_failure_propagates(serializer):
    transport = FakeTransport(fail_after=0)
    endpoint = Endpoint.from_serializer(serializer, send=transport.send)
    await endpoint.connected("peerA")

    with pytest.raises(ConnectionResetError):
        await endpoint.send("ping", 1)


@pytest.mark.ut
@pytest.mark.asyncio
async def test_send_connected_without_hook_fails(bare_endpoint):
    await bare_endpoint.connected("peerA")

    with pytest.raises(MissingHandlerError):
        await bare_endpoint.send("ping")


@pytest.mark.ut
@pytest.mark.asyncio
async def test_serialization_failure_is_contained(endpoint, transport, caplog):
    caplog.set_level(logging.ERROR, logger="core.endpoint")
    await endpoint.connected("peerA")

    assert await endpoint.send("unserializable", 1) is False
    assert await endpoint.try_send("unserializable", 1) is False

    assert transport.sent == []
    assert endpoint.pending == 0
    assert "peerA - Failed to serialize 'unserializable'" in caplog.text


@pytest.mark.ut
@pytest.mark.asyncio
async def test_serialization_failure_while_disconnected_is_not_queued(endpoint):
    assert await endpoint.send("unserializable") is False
    assert endpoint.pending == 0


@pytest.mark.ut
def test_prepare_returns_none_on_failure(endpoint, serializer):
    assert endpoint.prepare("unserializable") is None
    assert endpoint.prepare("ping", 1) == serializer.serialize("ping", 1)


@pytest.mark.ut
def test_prepare_rejects_reserved_event(endpoint):
    with pytest.raises(ReservedEventError):
        endpoint.prepare("delivered", "x")


@pytest.mark.ut
@pytest.mark.asyncio
async def test_try_send_rejects_reserved_event_in_both_states(endpoint):
    with pytest.raises(ReservedEventError):
        await endpoint.try_send("delivered")

    await endpoint.connected("peerA")
    with pytest.raises(ReservedEventError):
        await endpoint.try_send("delivered")


@pytest.mark.ut
@pytest.mark.asyncio
async def test_try_send_while_disconnected_drops(endpoint, transport):
    assert await endpoint.try_send("ping", 1) is False
    assert await endpoint.try_send_prepared(b"raw") is False

    assert endpoint.pending == 0
    assert transport.sent == []


@pytest.mark.ut
@pytest.mark.asyncio
async def test_try_send_does_not_serialize_while_disconnected(endpoint):
    # would be logged as a failure if it reached the serializer
    assert await endpoint.try_send("unserializable") is False


@pytest.mark.ut
@pytest.mark.asyncio
async def test_try_send_while_connected(endpoint, transport, serializer):
    await endpoint.connected("peerA")

    assert await endpoint.try_send("ping", 1) is True
    assert await endpoint.try_send_prepared(b"raw") is True
    assert transport.sent == [serializer.serialize("ping", 1), b"raw"]


@pytest.mark.ut
@pytest.mark.asyncio
async def test_send_prepared_queues_opaque_message(endpoint, transport):
    await endpoint.send_prepared(b"first")
    await endpoint.send_prepared(b"second")
    await endpoint.connected()

    assert transport.sent == [b"first", b"second"]


@pytest.mark.ut
@pytest.mark.asyncio
async def test_direct_send_with_pending_queue_is_a_precondition_violation(endpoint):
    await endpoint.send("queued")
    # bypass connected() so the queue is not drained
    endpoint._connected = True

    with pytest.raises(PreconditionViolation):
        await endpoint.send("direct")
    with pytest.raises(PreconditionViolation):
        await endpoint.try_send("direct")

    assert endpoint.pending == 1


@pytest.mark.ut
@pytest.mark.asyncio
async def test_send_during_drain_is_a_precondition_violation(serializer):
    endpoint = Endpoint.from_serializer(serializer)
    errors = []

    async def send(message):
        if message == serializer.serialize("first"):
            try:
                await endpoint.send("interleaved")
            except PreconditionViolation as exc:
                errors.append(exc)

    endpoint.set_send_handler(send)
    await endpoint.send("first")
    await endpoint.send("second")
    await endpoint.connected("peerA")

    assert len(errors) == 1
    assert endpoint.pending == 0

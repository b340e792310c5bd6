import pytest

from tests.fake.fake_serializer import FakeSerializer
from tests.fake.fake_transport import FakeTransport

from messenger.core.endpoint import Endpoint


@pytest.fixture
def serializer():
    return FakeSerializer(fail_on={"unserializable"})


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def endpoint(serializer, transport) -> Endpoint:
    return Endpoint.from_serializer(
        serializer,
        send=transport.send,
        disconnect=transport.disconnect,
    )


@pytest.fixture
def bare_endpoint(serializer) -> Endpoint:
    return Endpoint.from_serializer(serializer)

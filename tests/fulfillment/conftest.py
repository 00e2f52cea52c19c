import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def fulfillment_bed():
    from fulfillment.domain import fulfillment

    bed = DomainFixture(fulfillment)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(fulfillment_bed):
    from fulfillment.config import reset_settings
    from fulfillment.directory import reset_directory
    from fulfillment.gateway import reset_gateway
    from fulfillment.hooks import clear_hooks
    from protean import current_domain

    with fulfillment_bed.domain_context():
        yield
        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()

    clear_hooks()
    reset_gateway()
    reset_directory()
    reset_settings()


@pytest.fixture()
def directory():
    from fulfillment.directory import set_directory
    from fulfillment.directory.fake_adapter import FakeDirectory

    fake = FakeDirectory()
    set_directory(fake)
    return fake


@pytest.fixture()
def gateway():
    from fulfillment.gateway import set_gateway
    from fulfillment.gateway.fake_adapter import FakeGateway

    fake = FakeGateway(key_id="rzp_test_key", key_secret="test-secret")
    set_gateway(fake)
    return fake

import pytest

from config import RelaySettings


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def relay_settings():
    """Fast settings: no retry backoff, no fallback word delay, short probe."""
    return RelaySettings(
        base_url="http://lmstudio.test:1234",
        model="test-model",
        max_tokens=-1,
        buffered_timeout=2.0,
        stream_timeout=5.0,
        probe_timeout=0.2,
        status_timeout=1.0,
        max_retries=2,
        retry_backoff=0.0,
        history_limit=10,
        fallback_enabled=True,
        fallback_word_delay=0.0,
        connecting_notice="Connecting to OnlineCareAI...",
    )


@pytest.fixture
def transport_builder():
    from tests.fixtures.mock_clients import UpstreamTransportBuilder
    return UpstreamTransportBuilder()


@pytest.fixture
def upstream_client_factory(relay_settings):
    """Build an UpstreamClient bound to a mock transport."""
    from services.upstream_client import UpstreamClient

    def factory(builder, settings=None):
        return UpstreamClient(settings or relay_settings, transport=builder.build())
    return factory


@pytest.fixture
def configured_app(relay_settings, transport_builder):
    """App with the upstream dependency pointed at the mock transport."""
    from fastapi.testclient import TestClient
    from main import app
    from services.upstream_client import UpstreamClient, get_upstream_client

    state = {"settings": relay_settings}

    def override():
        return UpstreamClient(state["settings"], transport=transport_builder.build())

    app.dependency_overrides[get_upstream_client] = override
    with TestClient(app) as client:
        client.relay_state = state
        yield client
    app.dependency_overrides.clear()

import pytest

from infrastructure.container import container


@pytest.fixture(autouse=True)
def reset_service_container():
    """Every test starts with fresh services and an in-memory payment provider."""
    container.configure_for_testing()
    yield
    container.reset()

import pytest
from django.core.cache import cache

from .factories import UserFactory


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def logged_client(client):
    client.force_login(UserFactory())
    return client

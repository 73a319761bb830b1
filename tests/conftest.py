from __future__ import annotations

import pytest
from django.core.cache import cache
from django.test import Client


@pytest.fixture
def api_client() -> Client:
    return Client()


@pytest.fixture(autouse=True)
def reset_state():
    from route_optimizer import views

    cache.clear()
    views._optimizer_service = None
    yield
    cache.clear()
    views._optimizer_service = None

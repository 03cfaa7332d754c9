from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from config import Settings
from database import seed_store
from main import create_app

NOW = datetime(2024, 1, 14, 12, 0, tzinfo=timezone.utc)
API_KEY = "demo_key_12345"


def make_settings(**overrides) -> Settings:
    values = dict(
        host="127.0.0.1",
        port=8000,
        environment="test",
        log_level="INFO",
        rate_limit_max=100,
        rate_limit_window_seconds=900,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def store():
    return seed_store(NOW)


@pytest.fixture
def app(store):
    return create_app(store=store, settings=make_settings(), clock=lambda: NOW)


@pytest.fixture
def client(app):
    return TestClient(app, headers={"X-API-Key": API_KEY})


@pytest.fixture
def now():
    return NOW

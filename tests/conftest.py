"""
Pytest configuration and fixtures for the inventory tests
"""
import pytest
from fastapi.testclient import TestClient

from inventory_app import models
from inventory_app.crud import InventoryGateway
from inventory_app.database import build_engine, build_session_factory
from inventory_app.main import create_app
from inventory_app.notifier import LocalNotifier
from inventory_app.store import DocumentStore


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'inventory.db'}"


@pytest.fixture
def engine(database_url):
    engine = build_engine(database_url)
    models.Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def notifier():
    return LocalNotifier()


@pytest.fixture
def store(engine, notifier):
    return DocumentStore(build_session_factory(engine), notifier, "items")


@pytest.fixture
def gateway(store):
    return InventoryGateway(store)


@pytest.fixture
def broken_store(tmp_path, notifier):
    """Store whose database has no tables, so every call fails"""
    engine = build_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    yield DocumentStore(build_session_factory(engine), notifier, "items")
    engine.dispose()


@pytest.fixture
def client(database_url):
    """FastAPI test client backed by a fresh database"""
    with TestClient(create_app(database_url=database_url, redis_url=None)) as client:
        yield client

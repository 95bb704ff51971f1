"""
Pytest fixtures for backoffice backend tests.

Provides an in-memory database, a per-test clean slate and a test client.
"""

import pytest

from backoffice import create_app
from backoffice.config import Config
from backoffice.extensions import db
from backoffice.services import inventory_service, purchase_service


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    EXPIRY_WARNING_DAYS = 30
    CONCURRENCY_RETRY_ATTEMPTS = 3


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    # Clear all data but keep schema
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    # Cleanup after test
    db.session.rollback()


@pytest.fixture(scope='function')
def store_id():
    return "store-a"


@pytest.fixture(scope='function')
def tomatoes(db_session, store_id):
    """Inventory item with 10 kg on hand."""
    return inventory_service.create_item(
        store_id=store_id,
        fields={
            "name": "Tomatoes",
            "quantity": 10,
            "min_quantity": 5,
            "unit": "kg",
            "category": "Produce",
            "cost_cents": 4000,
            "supplier": "Fresh Farms",
            "sku": "PRD-TOM",
            "tags": ["fresh", "veg"],
        },
    )


@pytest.fixture(scope='function')
def purchase_order(db_session, store_id):
    """Purchase order whose items total exactly 100.00."""
    return purchase_service.create_purchase(
        store_id=store_id,
        fields={
            "number": "PO-0001",
            "supplier": "Fresh Farms",
            "items": [
                {"name": "Tomatoes", "quantity": 4, "price_cents": 2500},
            ],
        },
    )


@pytest.fixture(scope='function')
def file_app(tmp_path):
    """App on a file-backed SQLite database, so a second connection sees commits."""
    class FileConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'race.sqlite3'}"

    app = create_app(FileConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()

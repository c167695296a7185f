"""
Pytest fixtures for the Rainbow Room backend tests.

Provides the test database setup, seeded locations, a sized item with its
stock rows, a valid case file, and a test client.
"""

import pytest

from rainbow_room import create_app
from rainbow_room.config import Config
from rainbow_room.extensions import db
from rainbow_room.models import ItemSize
from rainbow_room.services import location_service, item_service, inventory_service


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function', autouse=True)
def db_session(app):
    """Empty every table before each test."""
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    db.session.rollback()
    db.session.expunge_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def locations(db_session):
    """The two default sites, keyed by name."""
    location_service.seed_default_locations()
    return {loc.name: loc for loc in location_service.list_locations(include_inactive=True)}


@pytest.fixture(scope='function')
def mckinney(locations):
    return locations["McKinney"]


@pytest.fixture(scope='function')
def plano(locations):
    return locations["Plano"]


@pytest.fixture(scope='function')
def boys_pants(locations):
    """Sized item with 4T and 5T rows at both locations, all at quantity 0."""
    return item_service.create_item({"name": "Boys Pants", "has_sizes": True}, sizes=["4T", "5T"])


def stock_row(item_id: int, size_label: str, location_id: int) -> ItemSize:
    return db.session.query(ItemSize).filter_by(
        item_id=item_id, size_label=size_label, location_id=location_id
    ).one()


@pytest.fixture(scope='function')
def pants_4t(boys_pants, mckinney):
    """Boys Pants 4T at McKinney, stocked with 10 through a logged addition."""
    row = stock_row(boys_pants.id, "4T", mckinney.id)
    inventory_service.add_stock(row.id, 10, volunteer_name="Sam", source="Drive")
    return row


@pytest.fixture(scope='function')
def case_file():
    """A case file that passes every checkout form rule."""
    return {
        "worker_first_name": "Dana",
        "worker_last_name": "Reyes",
        "department": "CPS/DFPS",
        "case_number": "CASE-1001",
        "allegations": ["Neglectful Supervision", "Physical Abuse"],
        "parent_guardian_first_name": "Jordan",
        "parent_guardian_last_name": "Lee",
        "zip_code": "75070",
        "number_of_children": 2,
        "checkout_date": "2026-03-14",
    }

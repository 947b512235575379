"""
Pytest fixtures for custody backend tests.

Provides test database setup, asset/director factories, and test client.

The in-memory database is one shared connection, so route tests never keep
an app context open across requests: they seed through `seed` (short-lived
contexts returning plain ids) and talk to the API through `client`.
"""

import pytest

from custodia import create_app
from custodia.extensions import db
from custodia.models import POOL_MODELS, Area, Director, DirectorArea


ACTOR = "tester@inventario.local"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.drop_all()


def _wipe(app):
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
    app.extensions.pop("custodia.corpus_cache", None)


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh database with an app context held for the whole test."""
    _wipe(app)
    with app.app_context():
        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def client(app):
    """Fresh database and a test client; no app context is held."""
    _wipe(app)
    return app.test_client()


@pytest.fixture
def actor_headers():
    return {"X-Actor": ACTOR}


def make_asset(origin="INEA", inventory_code="INV-001", **fields):
    """Add one pool asset and flush; returns the model instance."""
    fields.setdefault("description", f"Asset {inventory_code}")
    fields.setdefault("category", "MOBILIARIO")
    fields.setdefault("condition", "B")
    fields.setdefault("status", "ACTIVO")
    asset = POOL_MODELS[origin](inventory_code=inventory_code, **fields)
    db.session.add(asset)
    db.session.flush()
    return asset


def make_director(name, position=None, areas=()):
    """Add a director linked to the given area names (created as needed)."""
    director = Director(name=name, legacy_position=position)
    db.session.add(director)
    db.session.flush()
    for area_name in areas:
        area = db.session.query(Area).filter_by(name=area_name).first()
        if area is None:
            area = Area(name=area_name)
            db.session.add(area)
            db.session.flush()
        db.session.add(DirectorArea(director_id=director.id, area_id=area.id))
    db.session.flush()
    return director


class Seeder:
    """Seeds data in a short-lived app context and hands back plain ids."""

    def __init__(self, app):
        self.app = app

    def asset(self, origin="INEA", inventory_code="INV-001", **fields) -> int:
        with self.app.app_context():
            asset_id = make_asset(origin, inventory_code, **fields).id
            db.session.commit()
        return asset_id

    def director(self, name, position=None, areas=()) -> int:
        with self.app.app_context():
            director_id = make_director(name, position, areas).id
            db.session.commit()
        return director_id

    def query(self, fn):
        """Run fn() inside an app context and return its (plain) result."""
        with self.app.app_context():
            return fn()


@pytest.fixture
def seed(app, client):
    return Seeder(app)

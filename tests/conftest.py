"""
Shared pytest fixtures for the Retirement Planner test suite.

All tests run against an in-memory SQLite database (TestingConfig).
A single app context is pushed for the whole session so that SQLAlchemy
objects remain attached throughout.  After each test, clean_db wipes all
rows so tests are fully independent.

Engine tests build unsaved model instances and never touch the database;
route and tracker tests persist through the same session.
"""
import pytest
from app import create_app
from extensions import db as _db


# ---------------------------------------------------------------------------
# Application / database lifecycle
# ---------------------------------------------------------------------------

@pytest.fixture(scope='session')
def app():
    """Create a test Flask application with an in-memory SQLite database."""
    application = create_app('testing')
    ctx = application.app_context()
    ctx.push()
    _db.create_all()
    yield application
    _db.session.remove()
    _db.drop_all()
    ctx.pop()


@pytest.fixture(autouse=True)
def clean_db(app):
    """Wipe every table after each test so tests never share state."""
    yield
    _db.session.rollback()
    for table in reversed(_db.metadata.sorted_tables):
        _db.session.execute(table.delete())
    _db.session.commit()
    _db.session.expunge_all()


@pytest.fixture
def client(app):
    return app.test_client()


# ---------------------------------------------------------------------------
# Common model helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def family(app):
    from models.family import Family
    f = Family(name='Test Family', currency='EUR')
    _db.session.add(f)
    _db.session.commit()
    return f


@pytest.fixture
def user(app, family):
    from models.users import User
    u = User(
        email='admin@example.com',
        name='Admin User',
        family_id=family.id,
        role='admin',
    )
    u.set_password('TestPass1!')
    _db.session.add(u)
    _db.session.commit()
    return u


@pytest.fixture
def patch_family(monkeypatch):
    """Return a helper that makes the given family the 'logged-in' one."""
    def _set(family_id):
        monkeypatch.setattr('utils.db_helpers.get_family_id', lambda: family_id)
        monkeypatch.setattr('blueprints.retirement.routes.get_family_id', lambda: family_id)
        monkeypatch.setattr('services.networth_service.get_family_id', lambda: family_id)
    return _set

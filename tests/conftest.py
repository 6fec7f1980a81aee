import itertools
from datetime import datetime

import pytest

from circulation import create_app
from circulation.clock import FixedClock
from circulation.config import TestConfig
from circulation.extensions import db
from circulation.models.book import Book
from circulation.models.user import User

NOW = datetime(2024, 3, 1, 12, 0, 0)

_seq = itertools.count(1)


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def app(tmp_path, clock):
    class _Config(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'circulation.db'}"

    app = create_app(_Config, clock=clock)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield


@pytest.fixture
def service(app, ctx):
    return app.extensions["borrow_service"]


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user():
    """Aktif app context içinde kullanıcı ekler, id döner (commit sonrası okuma yapmaz)."""

    def _make(name="Borrower", status="active"):
        n = next(_seq)
        user = User(name=name, email=f"user{n}@example.com", library_card=f"LIB2024{n:04d}", status=status)
        db.session.add(user)
        db.session.flush()
        user_id = user.id
        db.session.commit()
        return user_id

    return _make


@pytest.fixture
def make_book():
    def _make(title="Borrowable Book", available=True):
        n = next(_seq)
        book = Book(title=title, isbn=f"978000000{n:04d}", genre="Fiction", available=available)
        db.session.add(book)
        db.session.flush()
        book_id = book.id
        db.session.commit()
        return book_id

    return _make

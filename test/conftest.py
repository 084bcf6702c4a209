import os

# Must be set before bookshelf.core.config is imported
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_FILE"] = ""

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from bookshelf.db.common.database_connection import build_engine, drop_tables, get_db, init_database
from bookshelf.db.book.models.book_models import Book
from bookshelf.db.book.models.book_schemas import Book as BookSchema
from bookshelf.db.user.services.user_service import UserService
from main import create_app


@pytest.fixture(scope="function")
def valid_card():
    return {
        "card_number": "4111 1111 1111 1111",
        "card_holder_name": "Alice Reader",
        "expiry_date": "12/99",
        "cvv": "123",
    }


@pytest.fixture(scope="function")
def engine(tmp_path):
    """
    A fresh SQLite database file per test. A file (not :memory:) so that the
    controllers' own sessions see the same data as the test session.
    """
    engine = build_engine(f"sqlite:///{tmp_path / 'bookshelf_test.db'}")
    init_database(bind=engine)
    yield engine
    drop_tables(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def books(db_session):
    """
    Book 1: $20, 10 copies. Book 2: $15, 5 copies. Book 3: $12.50, out of stock.
    """
    rows = [
        Book(id=1, title="The Hobbit", author="J. R. R. Tolkien", physical_copies=10,
             price=Decimal("20.00"), sold_copies=0),
        Book(id=2, title="1984", author="George Orwell", physical_copies=5,
             price=Decimal("15.00"), sold_copies=3),
        Book(id=3, title="The Alchemist", author="Paulo Coelho", physical_copies=0,
             price=Decimal("12.50"), sold_copies=7),
    ]
    db_session.add_all(rows)
    db_session.commit()
    return [BookSchema.model_validate(row) for row in rows]


@pytest.fixture(scope="function")
def user_id(db_session):
    assert UserService.register_user(db_session, "alice", "Alice", "Reader", "password123")
    return UserService.get_user_id_by_username(db_session, "alice")


@pytest.fixture(scope="function")
def admin_headers(db_session):
    assert UserService.register_user(db_session, "root", "Root", "Admin", "password123", is_admin=True)
    return {"X-Username": "root"}


@pytest.fixture(scope="function")
def app(session_factory):
    app = create_app(session_factory=session_factory, init_db=False)

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client(app):
    return TestClient(app)


@pytest.fixture(scope="function")
def stock_of(session_factory):
    """(physical_copies, sold_copies) of a book, read in a new session."""
    def _stock_of(book_id):
        with session_factory() as db:
            book = db.get(Book, book_id)
            return book.physical_copies, book.sold_copies
    return _stock_of

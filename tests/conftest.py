"""
Pytest fixtures for the book rental tests.

Each test gets its own SQLite file under tmp_path (file-backed so that
threads in the concurrency tests share one database), plus factories for
bookstores, users and books.
"""
import threading
from datetime import timedelta

import pytest

from api import create_app
from api.dependencies import STORAGE_KEY, get_storage
from models.book import Book
from models.bookstore import Bookstore
from models.db_storage import DBStorage
from models.user import User
from services.identity_service import IdentityService, TokenSettings
from services.rental_service import RentalService
from utils.security import SecretHasher, TokenSigner

ACCESS_SECRET = "access-secret-for-tests-0123456789abcdef"
REFRESH_SECRET = "refresh-secret-for-tests-0123456789abcdef"


@pytest.fixture
def storage(tmp_path):
    storage = DBStorage(f"sqlite:///{tmp_path / 'rental.db'}")
    storage.reload()
    yield storage
    storage.drop_all()
    storage.engine.dispose()


@pytest.fixture
def hasher():
    # Minimum argon2 costs keep the suite fast
    return SecretHasher(time_cost=1, memory_cost=1024, parallelism=1)


@pytest.fixture
def signer():
    return TokenSigner("HS256")


@pytest.fixture
def token_settings():
    return TokenSettings(
        access_secret=ACCESS_SECRET,
        refresh_secret=REFRESH_SECRET,
        access_ttl=timedelta(minutes=60),
        refresh_ttl=timedelta(days=7),
    )


@pytest.fixture
def identity(storage, hasher, signer, token_settings):
    return IdentityService(storage, hasher, signer, token_settings)


@pytest.fixture
def rentals(storage):
    return RentalService(storage)


@pytest.fixture
def make_bookstore(storage):
    def _make(name="Test Bookstore", location="Test Location"):
        with storage.transaction() as session:
            bookstore = Bookstore(name=name, location=location)
            session.add(bookstore)
        return bookstore

    return _make


@pytest.fixture
def bookstore(make_bookstore):
    return make_bookstore()


@pytest.fixture
def other_bookstore(make_bookstore):
    return make_bookstore(name="Other Bookstore", location="Elsewhere")


@pytest.fixture
def make_user(storage, bookstore):
    def _make(email="reader@example.com", store=None):
        with storage.transaction() as session:
            user = User(
                email=email,
                password_hash="not-a-real-hash",
                bookstore_id=(store or bookstore).id,
            )
            session.add(user)
        return user

    return _make


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def make_book(storage, bookstore):
    def _make(title="Book 1", author="Author 1", quantity=5, store=None):
        with storage.transaction() as session:
            book = Book(
                title=title,
                author=author,
                quantity=quantity,
                bookstore_id=(store or bookstore).id,
            )
            session.add(book)
        return book

    return _make


# =============================================================================
# HTTP
# =============================================================================

@pytest.fixture
def app(tmp_path):
    app = create_app("testing", DATABASE_URL=f"sqlite:///{tmp_path / 'api.db'}")
    yield app
    app_storage = app.extensions[STORAGE_KEY]
    app_storage.drop_all()
    app_storage.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_storage(app):
    with app.app_context():
        return get_storage()


@pytest.fixture
def seed(app_storage):
    """Two bookstores with a couple of books each."""
    with app_storage.transaction() as session:
        main = Bookstore(name="Main Street Books", location="Springfield")
        other = Bookstore(name="Harbor Books", location="Shelbyville")
        session.add_all([main, other])
        session.flush()
        books = {
            "dune": Book(title="Dune", author="Frank Herbert", quantity=2, bookstore_id=main.id),
            "emma": Book(title="Emma", author="Jane Austen", quantity=0, bookstore_id=main.id),
            "elsewhere": Book(title="Dune Messiah", author="Frank Herbert", quantity=3, bookstore_id=other.id),
        }
        session.add_all(books.values())
    return {"bookstore": main, "other_bookstore": other, "books": books}


@pytest.fixture
def signup(client, seed):
    def _signup(email="reader@example.com", password="super-secret-password", bookstore=None):
        resp = client.post(
            "/api/v1/auth/local/signup",
            json={
                "email": email,
                "password": password,
                "bookstore_id": (bookstore or seed["bookstore"]).id,
            },
        )
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()

    return _signup


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def race(storage, action, args):
    """
    Run `action(arg)` for every arg at the same moment, one thread each.
    Returns "ok" or the raised exception's class name per call.
    """
    barrier = threading.Barrier(len(args))
    outcomes = []
    guard = threading.Lock()

    def worker(arg):
        barrier.wait()
        try:
            action(arg)
            result = "ok"
        except Exception as exc:
            result = type(exc).__name__
        finally:
            storage.close()
        with guard:
            outcomes.append(result)

    threads = [threading.Thread(target=worker, args=(arg,)) for arg in args]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return outcomes

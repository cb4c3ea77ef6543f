"""
Pytest fixtures for ZENIBO backend tests.

Provides the app on an in-memory database, per-test table cleanup, users on
each plan, and bearer-token headers.
"""

from datetime import date, timedelta

import pytest

from zenibo import create_app
from zenibo.extensions import db
from zenibo.models import Book, Transaction
from zenibo.services import token_service
from zenibo.services.auth_service import create_user
from zenibo.time_utils import utcnow


DEFAULT_PASSWORD = "password123"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret-key',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'RECEIPT_STORAGE_DIR': str(tmp_path_factory.mktemp("receipts")),
    })

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
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_user(email: str, name: str = "Test User", plan: str = "free", is_admin: bool = False):
    """Create a user; paid plans are activated for 30 days."""
    user = create_user(email, DEFAULT_PASSWORD, name, is_admin=is_admin)
    if plan != "free":
        now = utcnow()
        user.subscription_plan = plan
        user.subscription_status = "active"
        user.subscription_start_date = now
        user.subscription_end_date = now + timedelta(days=30)
        db.session.commit()
    return user


def make_book(user, business_name: str = "Acme", account_name: str = "Petty cash", opening_balance: int = 0,
              export_format: str = "mf"):
    book = Book(
        user_id=user.id,
        business_name=business_name,
        account_name=account_name,
        opening_balance=opening_balance,
        export_format=export_format,
    )
    db.session.add(book)
    db.session.commit()
    return book


def make_transaction(book, when: date, type_: str, amount: int, description: str = "", client: str = "", **extra):
    tx = Transaction(
        book_id=book.id,
        date=when,
        type=type_,
        amount=amount,
        description=description,
        client=client,
        **extra,
    )
    db.session.add(tx)
    db.session.commit()
    return tx


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def headers_for(user) -> dict:
    return auth_headers(token_service.issue_token(user.id))


@pytest.fixture(scope='function')
def user_a(db_session):
    """Free-plan user A (first tenant)."""
    return make_user("user_a@example.com", "User A")


@pytest.fixture(scope='function')
def user_b(db_session):
    """Free-plan user B (second tenant)."""
    return make_user("user_b@example.com", "User B")


@pytest.fixture(scope='function')
def paid_user(db_session):
    """User on an active basic plan."""
    return make_user("paid@example.com", "Paid User", plan="basic")


@pytest.fixture(scope='function')
def admin_user(db_session):
    return make_user("admin@example.com", "Admin", is_admin=True)


@pytest.fixture(scope='function')
def headers_a(user_a):
    return headers_for(user_a)


@pytest.fixture(scope='function')
def headers_b(user_b):
    return headers_for(user_b)


@pytest.fixture(scope='function')
def paid_headers(paid_user):
    return headers_for(paid_user)


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return headers_for(admin_user)


@pytest.fixture(scope='function')
def book_a(user_a):
    return make_book(user_a, "Acme", "Petty cash", opening_balance=5000)


@pytest.fixture(scope='function')
def book_b(user_b):
    return make_book(user_b, "Beta", "Register", opening_balance=0)

from datetime import datetime, timedelta, timezone

import pytest
from werkzeug.security import generate_password_hash

from app import create_app
from extensions import db
from models import ClaimAttempt, HuntItem, User

ADMIN_EMAIL = "admin@example.com"
PLAYER_EMAIL = "player@example.com"
OTHER_EMAIL = "other@example.com"


@pytest.fixture
def app_factory():
    """Build isolated in-memory apps; extra config wins over the test defaults."""
    created = []

    def _make(**config):
        settings = {
            "TESTING": True,
            "SECRET_KEY": "test-secret",
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
        }
        settings.update(config)
        app = create_app(settings)
        created.append(app)
        return app

    yield _make

    for app in created:
        with app.app_context():
            db.session.remove()
            db.drop_all()


@pytest.fixture
def app(app_factory):
    return app_factory()


@pytest.fixture
def users(app):
    with app.app_context():
        admin = User(
            email=ADMIN_EMAIL,
            name="Admin",
            account_type="Admin",
            password_hash=generate_password_hash("adminpass"),
        )
        player = User(
            email=PLAYER_EMAIL,
            name="Player One",
            account_type="Player",
            password_hash=generate_password_hash("playerpass"),
        )
        other = User(email=OTHER_EMAIL, name="Player Two", account_type="Player")
        db.session.add_all([admin, player, other])
        db.session.commit()
        return {"admin": admin.id, "player": player.id, "other": other.id}


def login_as(client, email):
    with client.session_transaction() as sess:
        sess["user_email"] = email


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(app, users):
    c = app.test_client()
    login_as(c, ADMIN_EMAIL)
    return c


@pytest.fixture
def player_client(app, users):
    c = app.test_client()
    login_as(c, PLAYER_EMAIL)
    return c


@pytest.fixture
def add_attempts(app):
    """Append attempts given as (success, minutes_ago) pairs to a user's list."""

    def _add(email, specs, now=None, identifier="CODE"):
        now = now or datetime.now(timezone.utc)
        with app.app_context():
            user = User.query.filter_by(email=email).first()
            for success, minutes_ago in specs:
                user.claim_attempts.append(
                    ClaimAttempt(
                        identifier=identifier,
                        success=success,
                        timestamp=now - timedelta(minutes=minutes_ago),
                    )
                )
            db.session.commit()

    return _add


@pytest.fixture
def add_item(app):
    def _add(name="Golden Acorn", identifier="ACORN-1", points=10, description="Under the oak"):
        with app.app_context():
            item = HuntItem(name=name, identifier=identifier, points=points, description=description)
            db.session.add(item)
            db.session.commit()
            return item.id

    return _add


@pytest.fixture
def attempts_for(app):
    """Return a user's stored attempts as (success, identifier) tuples in stored order."""

    def _get(email):
        with app.app_context():
            user = User.query.filter_by(email=email).first()
            return [(attempt.success, attempt.identifier) for attempt in user.claim_attempts]

    return _get

"""
Pytest configuration and shared fixtures for the donation app tests.
"""

import datetime
import os

import pytest
from flask import Flask

os.environ["TESTING"] = "True"
os.environ["FLASK_ENV"] = "testing"

from main import create_app  # noqa: E402
from app.config import is_production_database  # noqa: E402
from app.extensions import db as database  # noqa: E402
from app.models import (  # noqa: E402
    Base,
    Donation,
    DonationCenter,
    Reward,
    User,
)
from app.utils.auth import create_access_token, hash_password  # noqa: E402


@pytest.fixture(scope="session")
def app():
    """Create and configure a test app instance."""
    app = create_app()
    app.config.update({"TESTING": True, "SECRET_KEY": "test-secret-key-for-testing-only"})

    db_uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if is_production_database(db_uri):
        pytest.exit(f" DANGER: Database URL appears to be production: {db_uri}")

    yield app


@pytest.fixture
def db(app: Flask):
    """Fresh tables for every test."""
    with app.app_context():
        Base.metadata.create_all(bind=database.engine)

        yield database

        database.session.remove()
        Base.metadata.drop_all(bind=database.engine)


@pytest.fixture
def client(app, db):
    return app.test_client()


def _make_user(email="donor@example.com", tokens=100, **kwargs):
    user = User(
        email=email,
        password_hash=hash_password(kwargs.pop("password", "password123")),
        name=kwargs.pop("name", "Laia Puig"),
        phone=kwargs.pop("phone", "600123456"),
        birthdate=kwargs.pop("birthdate", datetime.date(1990, 5, 17)),
        gender=kwargs.pop("gender", "dona"),
        blood_type=kwargs.pop("blood_type", "O+"),
        has_donated_before=kwargs.pop("has_donated_before", False),
        tokens=tokens,
        donation_count=kwargs.pop("donation_count", 0),
        lives_saved=kwargs.pop("lives_saved", 0),
        **kwargs,
    )
    database.session.add(user)
    database.session.commit()
    return user


@pytest.fixture
def sample_user(db):
    """A donor with 100 tokens."""
    return _make_user()


@pytest.fixture
def other_user(db):
    return _make_user(email="other@example.com", name="Jordi Vila")


@pytest.fixture
def sample_center(db):
    """An open fixed center with room for two donors per slot."""
    center = DonationCenter(
        name="Banc de Sang Barcelona",
        address="Passeig Taulat 116",
        city="Barcelona",
        postal_code="08005",
        latitude=41.3995,
        longitude=2.2005,
        type="fix",
        open_now=True,
        phone="935573500",
        facilities=["parking", "wifi"],
        capacity=2,
    )
    database.session.add(center)
    database.session.commit()
    return center


@pytest.fixture
def sample_reward(db):
    """A 50-token reward with ten units in stock."""
    reward = Reward(
        title="Entrada Primavera Sound",
        description="Entrada per a un dia del festival",
        short_description="Entrada de festival",
        long_description="Entrada vàlida per a un dia del festival Primavera Sound",
        image_url="https://example.com/primavera.jpg",
        category="festivals",
        tokens_required=50,
        status="available",
        stock_available=10,
        total_stock=10,
    )
    database.session.add(reward)
    database.session.commit()
    return reward


@pytest.fixture
def make_reward(db):
    def _make(tokens_required=50, stock_available=10, status="available", category="discounts"):
        reward = Reward(
            title=f"Descompte {tokens_required}",
            description="Descompte en comerços associats",
            short_description="Descompte",
            long_description="Descompte en comerços associats",
            image_url="https://example.com/discount.jpg",
            category=category,
            tokens_required=tokens_required,
            status=status,
            stock_available=stock_available,
            total_stock=stock_available,
        )
        database.session.add(reward)
        database.session.commit()
        return reward

    return _make


@pytest.fixture
def make_donation(db):
    def _make(user, center, date, donation_type="sang_total", tokens_earned=15):
        donation = Donation(
            user_id=user.id,
            donation_type=donation_type,
            date=date,
            center_id=center.id,
            center_name=center.name,
            tokens_earned=tokens_earned,
            volume=450,
        )
        database.session.add(donation)
        database.session.commit()
        return donation

    return _make


@pytest.fixture
def auth_headers(sample_user):
    """Authorization headers for sample_user."""
    token = create_access_token(sample_user)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_headers(other_user):
    token = create_access_token(other_user)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def booking_date():
    return (datetime.date.today() + datetime.timedelta(days=7)).isoformat()


@pytest.fixture
def make_user(db):
    return _make_user

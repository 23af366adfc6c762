"""Shared test fixtures."""
import os
import time

# Settings are read at import time, so the environment is prepared first
TEST_JWT_SECRET = "test-secret-that-is-long-enough-for-hs256-0123456789"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENV"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["IDENTITY_JWT_SECRET"] = TEST_JWT_SECRET
os.environ["IDENTITY_URL"] = "https://identity.test"
os.environ["IDENTITY_SERVICE_KEY"] = "service-role-key"

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from partner_portal.auth.identity import Identity, IdentityProvider
from partner_portal.auth.middleware import get_identity_provider
from partner_portal.auth.models import Caller, PartnerUser, UserRole
from partner_portal.raffles.models import Raffle, RaffleStatus
from partner_portal.referral.models import ChannelPartner, PartnerStatus, Submission, SubmissionSource, SubmissionStatus
from partner_portal.storage.db import db


def make_token(user_id: str, email: str | None = None, **claims) -> str:
    """Access token signed the way the identity store signs them."""
    payload = {
        "sub": user_id,
        "email": email or f"{user_id}@example.com",
        "aud": "authenticated",
        "exp": int(time.time()) + 3600,
    }
    payload.update(claims)
    return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")


def auth_headers(user_id: str, email: str | None = None) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, email)}"}


class FakeIdentityProvider(IdentityProvider):
    """Real token verification, user lookups served from a dict."""

    def __init__(self, users: dict[str, str] | None = None):
        super().__init__(jwt_secret=TEST_JWT_SECRET)
        self.users = dict(users or {})
        self.lookups: list[str] = []

    async def get_user(self, user_id):
        self.lookups.append(user_id)
        email = self.users.get(user_id)
        return Identity(id=user_id, email=email) if email else None

    async def get_users(self, user_ids):
        unique_ids = list(dict.fromkeys(user_ids))
        self.lookups.extend(unique_ids)
        return {
            uid: Identity(id=uid, email=self.users[uid]) if uid in self.users else None
            for uid in unique_ids
        }


@pytest.fixture(autouse=True)
def fresh_db():
    """Recreate the schema for every test."""
    db.drop_tables()
    db.create_tables()
    yield db


@pytest.fixture
def identity_store():
    return FakeIdentityProvider()


@pytest.fixture
def client(identity_store):
    """FastAPI test client with the identity store faked."""
    from partner_portal.api.main import app

    app.dependency_overrides[get_identity_provider] = lambda: identity_store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

@pytest.fixture
def make_partner():
    """Factory fixture: insert a ChannelPartner and return its id."""
    def _make(code="ACME", status=PartnerStatus.ACTIVE, company_name=None):
        with db.session() as session:
            partner = ChannelPartner(
                company_name=company_name or f"{code} Inc",
                contact_name="Pat Partner",
                email=f"{code.lower()}@partners.test",
                referral_code=code,
                status=status,
            )
            session.add(partner)
            session.flush()
            return partner.id
    return _make


@pytest.fixture
def make_user():
    """Factory fixture: insert a PartnerUser and return the matching Caller."""
    def _make(user_id="user-1", role=UserRole.PARTNER, partner_id=None, points=0):
        with db.session() as session:
            session.add(PartnerUser(user_id=user_id, role=role, partner_id=partner_id, points=points))
        return Caller(user_id=user_id, email=f"{user_id}@example.com", role=role, partner_id=partner_id)
    return _make


@pytest.fixture
def admin(make_user):
    return make_user("admin-1", role=UserRole.ADMIN)


@pytest.fixture
def make_raffle():
    """Factory fixture: insert a Raffle and return its id."""
    def _make(name="Prize", cost=10, max_entries=5, status=RaffleStatus.ACTIVE):
        with db.session() as session:
            raffle = Raffle(
                name=name,
                entry_cost_points=cost,
                max_entries=max_entries,
                status=status,
                created_by="admin-1",
            )
            session.add(raffle)
            session.flush()
            return raffle.id
    return _make


@pytest.fixture
def make_submission():
    """Factory fixture: insert a Submission and return its id."""
    def _make(**overrides):
        values = dict(
            lead_name="Lead Person",
            lead_email="lead@example.com",
            submission_source=SubmissionSource.WEB_FORM,
            status=SubmissionStatus.NEW,
            ip_address="unknown",
            user_agent="unknown",
        )
        values.update(overrides)
        with db.session() as session:
            submission = Submission(**values)
            session.add(submission)
            session.flush()
            return submission.id
    return _make

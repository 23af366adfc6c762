"""HTTP tests for the v1 API: envelopes, role gating and end-to-end flows."""
import pytest
from sqlalchemy.exc import OperationalError

from conftest import auth_headers
from partner_portal.admin import workflow as workflow_module
from partner_portal.api.rate_limit import limiter
from partner_portal.auth.models import PartnerUser, UserRole
from partner_portal.points.ledger import points_ledger
from partner_portal.raffles.models import RaffleEntry
from partner_portal.referral import service as referral_service_module
from partner_portal.referral.models import Submission
from partner_portal.settings import settings
from partner_portal.storage.db import db


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


# ── public submission ────────────────────────────────────────────────────────

class TestReferralSubmit:

    def test_anonymous_submission(self, client):
        response = client.post("/api/v1/referral/submit", json={
            "lead_name": "Jane Doe",
            "lead_email": "jane@x.com",
            "lead_phone": "555-0100",
        })

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["is_accounted"] is False
        assert body["quality_score"] == 20

        with db.session() as session:
            row = session.get(Submission, body["submission_id"])
            assert row.status.value == "new"
            assert row.submission_source.value == "web_form"
            assert row.ip_address == "unknown"
            assert row.user_agent == "testclient"

    def test_missing_email(self, client):
        response = client.post("/api/v1/referral/submit", json={"lead_name": "Jane"})
        assert response.status_code == 400
        assert response.json() == {"error": "Name and email are required"}

    def test_forwarded_ip_is_recorded(self, client):
        response = client.post(
            "/api/v1/referral/submit",
            json={"lead_name": "Jane", "lead_email": "jane@x.com"},
            headers={"x-forwarded-for": "198.51.100.7, 10.0.0.1"},
        )
        with db.session() as session:
            assert session.get(Submission, response.json()["submission_id"]).ip_address == "198.51.100.7"

    def test_logged_in_submission(self, client, make_partner, make_user):
        partner_id = make_partner("ACME")
        make_user("u1", partner_id=partner_id)

        response = client.post(
            "/api/v1/referral/submit",
            json={"lead_name": "Jane", "lead_email": "jane@x.com"},
            headers=auth_headers("u1"),
        )

        body = response.json()
        assert body["is_accounted"] is True
        with db.session() as session:
            assert session.get(Submission, body["submission_id"]).partner_id == partner_id

    def test_session_cookie_fallback(self, client, make_user):
        from conftest import make_token

        make_user("u1")
        client.cookies.set("sb-project-auth-token", make_token("u1"))
        response = client.get("/api/v1/referral/my-submissions")
        client.cookies.clear()

        assert response.status_code == 200
        assert response.json()["user"]["id"] == "u1"

    def test_invalid_body_uses_error_envelope(self, client):
        response = client.post("/api/v1/referral/submit", json={"lead_name": ["not", "a", "string"]})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"


# ── role gating ──────────────────────────────────────────────────────────────

ADMIN_ENDPOINTS = [
    ("get", "/api/v1/admin/dashboard"),
    ("get", "/api/v1/admin/users-with-submissions"),
    ("get", "/api/v1/admin/users/u1"),
    ("get", "/api/v1/admin/raffles"),
    ("get", "/api/v1/admin/site-media"),
]


class TestRoleGating:

    @pytest.mark.parametrize("method,path", ADMIN_ENDPOINTS)
    def test_no_credential_is_401(self, client, method, path):
        response = getattr(client, method)(path)
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    @pytest.mark.parametrize("role", [UserRole.PARTNER, UserRole.VIEWER])
    @pytest.mark.parametrize("method,path", ADMIN_ENDPOINTS)
    def test_non_admin_is_403(self, client, make_user, role, method, path):
        make_user("u1", role=role)
        response = getattr(client, method)(path, headers=auth_headers("u1"))
        assert response.status_code == 403

    def test_invalid_token_is_401(self, client):
        response = client.get("/api/v1/admin/dashboard", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_user_without_role_cannot_list_submissions(self, client):
        response = client.get("/api/v1/admin/submissions", headers=auth_headers("stranger"))
        assert response.status_code == 403
        assert response.json() == {"error": "User role not found"}

    def test_admin_patch_is_admin_only(self, client, make_user, make_submission):
        make_user("p1", role=UserRole.PARTNER)
        response = client.patch(
            f"/api/v1/admin/submissions/{make_submission()}",
            json={"status": "contacted"},
            headers=auth_headers("p1"),
        )
        assert response.status_code == 403


# ── admin flows ──────────────────────────────────────────────────────────────

class TestAdminSubmissions:

    def test_create_and_update(self, client, admin, make_user):
        make_user("u1", points=0)
        headers = auth_headers(admin.user_id)

        created = client.post("/api/v1/admin/submissions", headers=headers, json={
            "user_id": "u1",
            "lead_name": "Lead",
            "lead_email": "lead@x.com",
            "status": "pending",
        })
        assert created.status_code == 201
        submission_id = created.json()["data"]["id"]
        assert points_ledger.get_points("u1") == 1

        updated = client.patch(f"/api/v1/admin/submissions/{submission_id}", headers=headers, json={
            "status": "approved",
            "admin_notes": "Looks good",
        })
        assert updated.status_code == 200
        body = updated.json()
        assert body["success"] is True
        assert body["data"]["status"] == "approved"
        assert body["data"]["admin_notes"] == "Looks good"
        assert points_ledger.get_points("u1") == 3

        fetched = client.get(f"/api/v1/admin/submissions/{submission_id}", headers=headers)
        assert fetched.json()["data"]["id"] == submission_id

    def test_invalid_status(self, client, admin, make_submission):
        response = client.patch(
            f"/api/v1/admin/submissions/{make_submission()}",
            json={"status": "archived"},
            headers=auth_headers(admin.user_id),
        )
        assert response.status_code == 400
        assert "Invalid status" in response.json()["error"]

    def test_unknown_submission(self, client, admin):
        response = client.get("/api/v1/admin/submissions/missing", headers=auth_headers(admin.user_id))
        assert response.status_code == 404
        assert response.json() == {"error": "Submission not found"}

    def test_list_pagination(self, client, admin, make_submission):
        for _ in range(3):
            make_submission()
        response = client.get(
            "/api/v1/admin/submissions?limit=2&offset=1", headers=auth_headers(admin.user_id)
        )
        body = response.json()
        assert body["count"] == 3
        assert body["limit"] == 2
        assert body["offset"] == 1
        assert len(body["data"]) == 2

    def test_dashboard(self, client, admin, make_submission):
        make_submission()
        response = client.get("/api/v1/admin/dashboard", headers=auth_headers(admin.user_id))
        assert response.status_code == 200
        assert response.json()["summary"]["totalSubmissions"] == 1


class TestAdminUsers:

    def test_user_detail_and_points(self, client, admin, identity_store, make_user, make_submission):
        identity_store.users["u1"] = "one@example.com"
        make_user("u1", points=2)
        make_submission(submitted_by_user_id="u1")
        headers = auth_headers(admin.user_id)

        detail = client.get("/api/v1/admin/users/u1", headers=headers).json()
        assert detail["user"] == {"id": "u1", "email": "one@example.com", "points": 2}
        assert len(detail["submissions"]) == 1

        patched = client.patch("/api/v1/admin/users/u1", headers=headers, json={"delta": 5})
        assert patched.json() == {"success": True, "points": 7}

        rejected = client.patch("/api/v1/admin/users/u1", headers=headers, json={"delta": -50})
        assert rejected.status_code == 400
        assert rejected.json()["error"] == "Insufficient points"

    def test_unknown_user_is_404(self, client, admin):
        response = client.get("/api/v1/admin/users/ghost", headers=auth_headers(admin.user_id))
        assert response.status_code == 404

    def test_users_with_submissions(self, client, admin, identity_store, make_submission):
        identity_store.users["u1"] = "one@example.com"
        make_submission(submitted_by_user_id="u1")

        response = client.get("/api/v1/admin/users-with-submissions", headers=auth_headers(admin.user_id))
        users = response.json()["users"]
        assert users[0]["user_id"] == "u1"
        assert users[0]["email"] == "one@example.com"


# ── raffles ──────────────────────────────────────────────────────────────────

class TestRaffles:

    def test_admin_creates_and_lists(self, client, admin):
        headers = auth_headers(admin.user_id)
        created = client.post("/api/v1/admin/raffles", headers=headers, json={
            "name": "Headphones", "entry_cost_points": 5, "max_entries": 10,
        })
        assert created.status_code == 200
        assert created.json()["raffle"]["name"] == "Headphones"

        listed = client.get("/api/v1/admin/raffles", headers=headers).json()["raffles"]
        assert [r["entry_count"] for r in listed] == [0]

    def test_create_missing_fields(self, client, admin):
        response = client.post(
            "/api/v1/admin/raffles", headers=auth_headers(admin.user_id), json={"name": "X"}
        )
        assert response.status_code == 400
        assert response.json() == {"error": "name, entry_cost_points, max_entries are required"}

    def test_enter_requires_auth(self, client, make_raffle):
        response = client.post("/api/v1/raffles/enter", json={"raffle_id": make_raffle()})
        assert response.status_code == 401

    def test_enter_success(self, client, make_user, make_raffle):
        make_user("u1", points=12)
        response = client.post(
            "/api/v1/raffles/enter", json={"raffle_id": make_raffle(cost=10)}, headers=auth_headers("u1")
        )
        assert response.json() == {"success": True, "remaining_points": 2}

    def test_insufficient_points(self, client, make_user, make_raffle):
        make_user("u1", points=5)
        raffle_id = make_raffle(cost=10)

        response = client.post(
            "/api/v1/raffles/enter", json={"raffle_id": raffle_id}, headers=auth_headers("u1")
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Insufficient points"
        assert points_ledger.get_points("u1") == 5
        with db.session() as session:
            assert session.query(RaffleEntry).count() == 0

    def test_full_raffle(self, client, make_user, make_raffle):
        make_user("u1", points=10)
        raffle_id = make_raffle(cost=1, max_entries=1)
        headers = auth_headers("u1")

        client.post("/api/v1/raffles/enter", json={"raffle_id": raffle_id}, headers=headers)
        response = client.post("/api/v1/raffles/enter", json={"raffle_id": raffle_id}, headers=headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Raffle is full"}

    def test_partner_view(self, client, make_user, make_raffle):
        make_user("u1", points=4)
        make_raffle(name="Open")
        body = client.get("/api/v1/raffles", headers=auth_headers("u1")).json()
        assert body["points"] == 4
        assert [r["name"] for r in body["raffles"]] == ["Open"]


# ── site media ───────────────────────────────────────────────────────────────

class TestSiteMedia:

    def test_upsert_and_public_list(self, client, admin):
        headers = auth_headers(admin.user_id)
        client.post("/api/v1/admin/site-media", headers=headers, json={"key": "hero", "url": "https://a"})
        client.post("/api/v1/admin/site-media", headers=headers, json={"key": "hero", "url": "https://b"})
        client.post("/api/v1/admin/site-media", headers=headers, json={"key": "about", "url": "https://c"})

        media = client.get("/api/v1/site-media").json()["media"]
        assert [(m["key"], m["url"]) for m in media] == [("about", "https://c"), ("hero", "https://b")]

    def test_key_and_url_required(self, client, admin):
        response = client.post(
            "/api/v1/admin/site-media", headers=auth_headers(admin.user_id), json={"key": "hero"}
        )
        assert response.status_code == 400
        assert response.json() == {"error": "key and url are required"}


# ── sign-in ──────────────────────────────────────────────────────────────────

def _last_login(user_id):
    with db.session() as session:
        return session.query(PartnerUser).filter_by(user_id=user_id).one().last_login_at


class TestLogin:

    def test_login_stamps_last_login(self, client, make_partner, make_user):
        partner_id = make_partner("ACME")
        make_user("u1", partner_id=partner_id, points=3)

        response = client.post("/api/v1/auth/login", headers=auth_headers("u1"))

        assert response.status_code == 200
        assert response.json() == {
            "user_id": "u1",
            "email": "u1@example.com",
            "role": "partner",
            "partner_id": partner_id,
            "points": 3,
        }
        assert _last_login("u1") is not None

    def test_login_requires_credential(self, client):
        assert client.post("/api/v1/auth/login").status_code == 401

    def test_login_without_role_creates_nothing(self, client):
        body = client.post("/api/v1/auth/login", headers=auth_headers("stranger")).json()
        assert body["role"] is None
        with db.session() as session:
            assert session.query(PartnerUser).count() == 0

    def test_role_checked_reads_do_not_write(self, client, admin):
        headers = auth_headers(admin.user_id)
        assert client.get("/api/v1/admin/dashboard", headers=headers).status_code == 200
        assert client.get("/api/v1/auth/me", headers=headers).json()["role"] == "admin"
        assert _last_login(admin.user_id) is None


# ── rate limiting ────────────────────────────────────────────────────────────

class TestRateLimit:

    @pytest.fixture
    def enabled_limiter(self, monkeypatch):
        limiter.reset()
        monkeypatch.setattr(limiter, "enabled", True)
        yield limiter
        limiter.reset()

    def test_submit_limit_uses_envelope(self, client, enabled_limiter):
        allowed = int(settings.rate_limit_submit.split("/")[0])
        body = {"lead_name": "Jane", "lead_email": "jane@x.com"}

        for _ in range(allowed):
            assert client.post("/api/v1/referral/submit", json=body).status_code == 200

        response = client.post("/api/v1/referral/submit", json=body)
        assert response.status_code == 429
        assert response.json() == {"error": "Too many requests. Please try again later."}


# ── persistence failures ─────────────────────────────────────────────────────

def _failing(*args, **kwargs):
    raise OperationalError("INSERT", {}, Exception("disk I/O error"))


class TestInternalErrors:

    def test_public_intake_hides_driver_message(self, client, monkeypatch):
        monkeypatch.setattr(referral_service_module, "resolve_attribution", _failing)

        response = client.post(
            "/api/v1/referral/submit", json={"lead_name": "Jane", "lead_email": "jane@x.com"}
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to submit referral"}

    def test_admin_create_includes_driver_message(self, client, admin, monkeypatch):
        monkeypatch.setattr(referral_service_module, "record_activity", _failing)

        response = client.post(
            "/api/v1/admin/submissions",
            json={"lead_name": "Jane", "lead_email": "jane@x.com"},
            headers=auth_headers(admin.user_id),
        )

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Failed to create submission"
        assert "disk I/O error" in body["details"]
        with db.session() as session:
            assert session.query(Submission).count() == 0

    def test_admin_update_includes_driver_message(self, client, admin, make_submission, monkeypatch):
        submission_id = make_submission()
        monkeypatch.setattr(workflow_module, "record_activity", _failing)

        response = client.patch(
            f"/api/v1/admin/submissions/{submission_id}",
            json={"status": "contacted"},
            headers=auth_headers(admin.user_id),
        )

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Failed to update submission"
        assert "disk I/O error" in body["details"]
        with db.session() as session:
            assert session.get(Submission, submission_id).status.value == "new"

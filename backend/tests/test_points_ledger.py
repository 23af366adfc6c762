"""Tests for partner_portal.points.ledger: balances never go negative."""
import threading

import pytest
from sqlalchemy.dialects import postgresql

from partner_portal.auth.models import PartnerUser, UserRole
from partner_portal.errors import InsufficientPointsError, ValidationError
from partner_portal.points import ledger as ledger_module
from partner_portal.points.ledger import credit_statement, points_ledger
from partner_portal.storage.db import Database, db


class TestGetPoints:

    def test_missing_user_has_zero(self):
        assert points_ledger.get_points("nobody") == 0

    def test_returns_stored_balance(self, make_user):
        make_user("u1", points=7)
        assert points_ledger.get_points("u1") == 7


class TestAdjust:

    def test_credit_existing_user(self, make_user):
        make_user("u1", points=2)
        assert points_ledger.credit("u1", 3) == 5
        assert points_ledger.get_points("u1") == 5

    def test_credit_creates_viewer_row(self):
        assert points_ledger.credit("new-user", 1) == 1

        with db.session() as session:
            row = session.query(PartnerUser).filter_by(user_id="new-user").one()
            assert row.role == UserRole.VIEWER
            assert row.points == 1

    def test_debit_to_exactly_zero(self, make_user):
        make_user("u1", points=10)
        assert points_ledger.debit("u1", 10) == 0

    def test_debit_beyond_balance_is_rejected_without_change(self, make_user):
        make_user("u1", points=5)

        with pytest.raises(InsufficientPointsError) as exc_info:
            points_ledger.debit("u1", 10)

        assert exc_info.value.required == 10
        assert exc_info.value.available == 5
        assert points_ledger.get_points("u1") == 5

    def test_debit_missing_user_is_rejected(self):
        with pytest.raises(InsufficientPointsError):
            points_ledger.debit("nobody", 1)
        assert points_ledger.get_points("nobody") == 0

    def test_sequence_tracks_signed_deltas(self, make_user):
        make_user("u1", points=0)
        balance = 0
        for delta in (1, 3, -2, 3, -5, 1):
            balance = points_ledger.adjust("u1", delta)
        assert balance == 1
        assert points_ledger.get_points("u1") == 1

    def test_non_positive_amounts_are_programming_errors(self):
        with pytest.raises(ValueError):
            points_ledger.credit("u1", 0)
        with pytest.raises(ValueError):
            points_ledger.debit("u1", -1)

    def test_joins_enclosing_transaction(self, make_user):
        make_user("u1", points=4)

        with pytest.raises(RuntimeError):
            with db.session() as session:
                points_ledger.credit("u1", 6, session=session)
                raise RuntimeError("abort")

        assert points_ledger.get_points("u1") == 4


class TestSetPoints:

    def test_overwrites_balance(self, make_user):
        make_user("u1", points=4)
        assert points_ledger.set_points("u1", 12) == (4, 12)
        assert points_ledger.get_points("u1") == 12

    def test_creates_missing_row(self):
        assert points_ledger.set_points("u2", 3) == (0, 3)

    def test_negative_is_rejected(self):
        with pytest.raises(ValidationError):
            points_ledger.set_points("u1", -1)


class TestCreditUpsert:
    """First credits for a user are a single INSERT ... ON CONFLICT."""

    def test_postgres_statement_updates_on_user_id_conflict(self):
        sql = str(credit_statement("postgresql", "u1", 3).compile(dialect=postgresql.dialect()))
        assert "INSERT INTO partner_users" in sql
        assert "ON CONFLICT (user_id) DO UPDATE SET points" in sql
        assert "points +" in sql

    def test_unsupported_dialect(self):
        with pytest.raises(NotImplementedError):
            credit_statement("mssql", "u1", 1)

    def test_credit_keeps_existing_role(self, make_user):
        make_user("u1", role=UserRole.ADMIN, points=1)
        assert points_ledger.credit("u1", 2) == 3

        with db.session() as session:
            row = session.query(PartnerUser).filter_by(user_id="u1").one()
            assert row.role == UserRole.ADMIN

    def test_concurrent_first_credits_share_one_row(self, tmp_path, monkeypatch):
        database = Database(f"sqlite:///{tmp_path / 'points.db'}")
        database.create_tables()
        monkeypatch.setattr(ledger_module, "db", database)

        workers = 6
        barrier = threading.Barrier(workers, timeout=10)
        errors = []

        def credit():
            barrier.wait()
            try:
                points_ledger.credit("first-timer", 1)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=credit) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert errors == []
        with database.session() as session:
            rows = session.query(PartnerUser).filter_by(user_id="first-timer").all()
            assert len(rows) == 1
            assert rows[0].points == workers
        database.engine.dispose()

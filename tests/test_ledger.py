"""
Unit tests for the ledger and account balance.

Tests cover:
1. Balance and ledger row move together
2. Transaction type and sign consistency
3. Increments applied in SQL, not from a stale balance
4. The remote-callable update_user_balance contract
5. Top-ups and transaction history totals
"""

import pytest
from decimal import Decimal
from sqlalchemy.exc import OperationalError

from expresslane.exceptions import UserNotFoundError
from expresslane.ledger.service import LedgerService
from expresslane.models import Transaction, TransactionType, User


def balance_of(db, user_id):
    db.expire_all()
    return db.query(User).filter(User.id == user_id).one().balance


class TestApplyDelta:
    def test_credit_and_ledger_row(self, db, driver):
        entry = LedgerService(db).apply_delta(driver.id, Decimal("25.00"), "Manual credit")
        db.commit()

        assert entry.type == TransactionType.ACCOUNT_TOPUP
        assert entry.amount == Decimal("25.00")
        assert entry.description == "Manual credit"
        assert balance_of(db, driver.id) == Decimal("225.00")

    def test_debit_defaults_to_booking_payment(self, db, driver):
        entry = LedgerService(db).apply_delta(driver.id, Decimal("-50"), "Payment")
        db.commit()

        assert entry.type == TransactionType.BOOKING_PAYMENT
        assert entry.amount == Decimal("-50.00")
        assert balance_of(db, driver.id) == Decimal("150.00")

    def test_does_not_commit(self, db, driver):
        """The caller owns the transaction; rolling back undoes both effects."""
        LedgerService(db).apply_delta(driver.id, Decimal("-50"), "Payment")
        db.rollback()

        assert balance_of(db, driver.id) == Decimal("200.00")
        assert db.query(Transaction).count() == 0

    @pytest.mark.parametrize("amount, transaction_type", [
        (Decimal("50"), TransactionType.FINE),
        (Decimal("50"), TransactionType.BOOKING_PAYMENT),
        (Decimal("-50"), TransactionType.REFUND),
        (Decimal("-50"), TransactionType.ACCOUNT_TOPUP),
    ])
    def test_sign_must_match_type(self, db, driver, amount, transaction_type):
        with pytest.raises(ValueError):
            LedgerService(db).apply_delta(driver.id, amount, transaction_type=transaction_type)

    def test_zero_change_rejected(self, db, driver):
        with pytest.raises(ValueError):
            LedgerService(db).apply_delta(driver.id, 0)

    def test_unknown_user(self, db):
        with pytest.raises(UserNotFoundError):
            LedgerService(db).apply_delta(9999, Decimal("10"))

    def test_fines_may_go_negative(self, db, driver):
        LedgerService(db).apply_delta(driver.id, Decimal("-1000"), transaction_type=TransactionType.FINE)
        db.commit()

        assert balance_of(db, driver.id) == Decimal("-800.00")

    def test_increment_ignores_stale_balance(self, session_factory, driver):
        """Two sessions that both read the old balance still apply both deltas."""
        first, second = session_factory(), session_factory()
        try:
            assert first.get(User, driver.id).balance == Decimal("200.00")
            assert second.get(User, driver.id).balance == Decimal("200.00")

            LedgerService(first).apply_delta(driver.id, Decimal("-50"))
            first.commit()
            LedgerService(second).apply_delta(driver.id, Decimal("30"))
            second.commit()

            assert balance_of(first, driver.id) == Decimal("180.00")
        finally:
            first.close()
            second.close()


class TestUpdateUserBalance:
    def test_success(self, db, driver):
        assert LedgerService(db).update_user_balance(driver.id, Decimal("40"), "Adjustment") is True
        assert balance_of(db, driver.id) == Decimal("240.00")
        assert db.query(Transaction).filter(Transaction.user_id == driver.id).count() == 1

    def test_unknown_user_returns_false(self, db):
        assert LedgerService(db).update_user_balance(9999, Decimal("40")) is False
        assert db.query(Transaction).count() == 0

    def test_database_failure_rolls_back(self, db, driver, monkeypatch):
        def broken_flush(*args, **kwargs):
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db, "flush", broken_flush)

        assert LedgerService(db).update_user_balance(driver.id, Decimal("40")) is False
        monkeypatch.undo()
        assert balance_of(db, driver.id) == Decimal("200.00")
        assert db.query(Transaction).count() == 0


class TestTopUpAndHistory:
    def test_top_up(self, db, driver):
        entry = LedgerService(db).top_up(driver.id, Decimal("300"))

        assert entry.id is not None
        assert entry.type == TransactionType.ACCOUNT_TOPUP
        assert balance_of(db, driver.id) == Decimal("500.00")

    def test_top_up_must_be_positive(self, db, driver):
        with pytest.raises(ValueError):
            LedgerService(db).top_up(driver.id, Decimal("-5"))

    def test_history_totals(self, db, driver):
        service = LedgerService(db)
        service.top_up(driver.id, Decimal("100"))
        service.apply_delta(driver.id, Decimal("-50"), transaction_type=TransactionType.BOOKING_PAYMENT)
        service.apply_delta(driver.id, Decimal("50"), transaction_type=TransactionType.REFUND)
        service.apply_delta(driver.id, Decimal("-1000"), transaction_type=TransactionType.FINE)
        db.commit()

        history = service.get_history(driver.id)

        assert history.total_count == 4
        assert history.total_credits == Decimal("150.00")
        assert history.total_debits == Decimal("1050.00")
        assert history.current_balance == Decimal("-700.00")
        assert [e.type for e in history.entries][0] == TransactionType.FINE

    def test_history_pagination(self, db, driver):
        service = LedgerService(db)
        for _ in range(3):
            service.top_up(driver.id, Decimal("10"))

        history = service.get_history(driver.id, limit=2, offset=0)

        assert history.total_count == 3
        assert len(history.entries) == 2

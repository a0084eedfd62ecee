"""Tests for conflicting concurrent writes and the retry loop."""

import logging
from datetime import UTC, datetime

import pytest
from sqlalchemy.orm.exc import StaleDataError

from ledger.core.money import Money
from ledger.models.audit_log import AuditLog
from ledger.models.credit import CreditReason, CreditStatus
from ledger.models.payment import Payment, PaymentMethod
from ledger.repositories.invoice_repository import InvoiceRepository
from ledger.services.credit_application import CreditApplicationService
from ledger.services.errors import (
    ConcurrencyConflict,
    InsufficientCredit,
    InvalidPaymentAmount,
    RetriesExhausted,
)
from ledger.services.payment_allocation import PaymentAllocationService
from ledger.services.retry import run_with_retry
from tests.conftest import create_customer, create_invoice


def m(value: str) -> Money:
    return Money.from_decimal(value)


def record(db, customer_id, user_id, amount):
    return PaymentAllocationService(db).record_payment(
        customer_id=customer_id,
        amount=m(amount),
        method=PaymentMethod.CASH,
        payment_date=datetime(2024, 3, 1, tzinfo=UTC),
        recorded_by=user_id,
    )


def run_once_after(monkeypatch, owner, name, interleaved):
    """Patch ``owner.name`` so ``interleaved`` runs right after its first call."""
    original = getattr(owner, name)
    state = {"fired": False}

    def wrapper(self, *args, **kwargs):
        result = original(self, *args, **kwargs)
        if not state["fired"]:
            state["fired"] = True
            interleaved()
        return result

    monkeypatch.setattr(owner, name, wrapper)
    return state


class TestConcurrentPayments:
    def test_second_payment_sees_committed_balance(
        self, db_session, session_factory, monkeypatch, user_id
    ):
        customer = create_customer(db_session)
        invoice = create_invoice(db_session, customer.id, "INV-001", "500")

        def competing_payment():
            other = session_factory()
            try:
                record(other, customer.id, user_id, "500")
            finally:
                other.close()

        state = run_once_after(
            monkeypatch, InvoiceRepository, "get_open_by_customer_id", competing_payment
        )

        payment = record(db_session, customer.id, user_id, "500")

        assert state["fired"]
        db_session.refresh(invoice)
        assert invoice.balance == Money.zero()
        assert invoice.status == "paid"
        assert payment.allocated_amount == Money.zero()
        assert payment.credit_amount == m("500")

        payments = db_session.query(Payment).all()
        assert len(payments) == 2
        assert Money.sum(p.allocated_amount for p in payments) == m("500")
        assert (
            db_session.query(AuditLog).filter(AuditLog.action == "payment_recorded").count() == 2
        )

    def test_gives_up_after_configured_attempts(self, db_session, monkeypatch, user_id):
        customer = create_customer(db_session)
        create_invoice(db_session, customer.id, "INV-001", "500")
        service = PaymentAllocationService(db_session)
        calls = {"count": 0}

        def always_stale(invoice, amount):
            calls["count"] += 1
            raise StaleDataError("invoice changed underneath")

        monkeypatch.setattr(service.tracker, "apply_amount", always_stale)

        with pytest.raises(RetriesExhausted) as exc_info:
            service.record_payment(
                customer_id=customer.id,
                amount=m("100"),
                method=PaymentMethod.CASH,
                payment_date=None,
                recorded_by=user_id,
            )

        assert exc_info.value.attempts == 3
        assert calls["count"] == 3
        assert db_session.query(Payment).count() == 0


class TestConcurrentCreditApplication:
    def test_credit_is_never_overdrawn(
        self, db_session, session_factory, monkeypatch, user_id
    ):
        customer = create_customer(db_session)
        credit = CreditApplicationService(db_session).grant_credit(
            customer_id=customer.id,
            amount=m("200"),
            reason=CreditReason.GOODWILL,
            created_by=user_id,
        )
        first = create_invoice(db_session, customer.id, "INV-001", "150")
        second = create_invoice(db_session, customer.id, "INV-002", "150")

        def competing_application():
            other = session_factory()
            try:
                CreditApplicationService(other).apply_credit(
                    credit.id, second.id, m("150"), applied_by=user_id
                )
            finally:
                other.close()

        run_once_after(monkeypatch, InvoiceRepository, "lock", competing_application)

        with pytest.raises(InsufficientCredit):
            CreditApplicationService(db_session).apply_credit(
                credit.id, first.id, m("150"), applied_by=user_id
            )

        db_session.refresh(credit)
        db_session.refresh(first)
        assert credit.available_amount == m("50")
        assert credit.status == CreditStatus.ACTIVE.value
        assert first.balance == m("150")


class TestRunWithRetry:
    def test_returns_first_successful_result(self, db_session):
        attempts = []

        def operation():
            attempts.append(1)
            if len(attempts) < 3:
                raise ConcurrencyConflict("busy")
            return "done"

        assert run_with_retry(db_session, operation, attempts=3) == "done"
        assert len(attempts) == 3

    def test_stale_data_counts_as_conflict(self, db_session, caplog):
        def operation():
            raise StaleDataError("stale")

        with caplog.at_level(logging.WARNING, logger="ledger.services.retry"):
            with pytest.raises(RetriesExhausted) as exc_info:
                run_with_retry(db_session, operation, attempts=2)

        assert isinstance(exc_info.value.__cause__, ConcurrencyConflict)
        assert len(caplog.records) == 2
        assert "attempt 2/2" in caplog.records[-1].getMessage()

    def test_other_errors_are_not_retried(self, db_session):
        attempts = []

        def operation():
            attempts.append(1)
            raise InvalidPaymentAmount("nope")

        with pytest.raises(InvalidPaymentAmount):
            run_with_retry(db_session, operation, attempts=3)
        assert len(attempts) == 1

"""Tests for PaymentAllocationService."""

from datetime import UTC, datetime
from uuid import uuid4

import pytest

from ledger.core.money import Money
from ledger.models.audit_log import AuditLog
from ledger.models.credit import Credit, CreditReason, CreditStatus
from ledger.models.invoice import InvoiceStatus
from ledger.models.payment import Payment, PaymentMethod
from ledger.models.payment_application import PaymentApplication
from ledger.repositories.credit_repository import CreditRepository
from ledger.repositories.invoice_repository import InvoiceRepository
from ledger.repositories.payment_application_repository import PaymentApplicationRepository
from ledger.services.errors import (
    CustomerNotFound,
    InvalidPaymentAmount,
    InvoiceNotApplicable,
    InvoiceNotFound,
)
from ledger.services.invoice_balance import InvoiceBalanceTracker
from ledger.services.payment_allocation import PaymentAllocationService
from tests.conftest import create_customer, create_invoice


def m(value: str) -> Money:
    return Money.from_decimal(value)


@pytest.fixture
def service(db_session):
    return PaymentAllocationService(db_session)


@pytest.fixture
def customer(db_session):
    return create_customer(db_session)


def pay(service, customer_id, user_id, amount, **kwargs):
    return service.record_payment(
        customer_id=customer_id,
        amount=m(amount),
        method=kwargs.pop("method", PaymentMethod.BANK_TRANSFER),
        payment_date=kwargs.pop("payment_date", datetime(2024, 3, 1, 10, 0, tzinfo=UTC)),
        recorded_by=user_id,
        **kwargs,
    )


class TestRecordPaymentScenarios:
    def test_partial_payment_of_single_invoice(self, db_session, service, customer, user_id):
        invoice = create_invoice(db_session, customer.id, "INV-001", "1000")

        payment = pay(service, customer.id, user_id, "600")

        assert invoice.balance == m("400")
        assert invoice.status == InvoiceStatus.PARTIAL.value
        assert payment.allocated_amount == m("600")
        assert payment.credit_amount == Money.zero()
        applications = PaymentApplicationRepository(db_session).get_by_payment_id(payment.id)
        assert len(applications) == 1
        assert applications[0].invoice_id == invoice.id
        assert applications[0].amount_applied == m("600")
        assert CreditRepository(db_session).get_by_source_payment_id(payment.id) is None

    def test_overpayment_becomes_credit(self, db_session, service, customer, user_id):
        invoice = create_invoice(db_session, customer.id, "INV-001", "1000")
        pay(service, customer.id, user_id, "600")

        payment = pay(service, customer.id, user_id, "1000")

        assert invoice.balance == Money.zero()
        assert invoice.status == InvoiceStatus.PAID.value
        assert payment.allocated_amount == m("400")
        assert payment.credit_amount == m("600")

        credit = CreditRepository(db_session).get_by_source_payment_id(payment.id)
        assert credit is not None
        assert credit.amount == m("600")
        assert credit.available_amount == m("600")
        assert credit.reason == CreditReason.OVERPAYMENT.value
        assert credit.status == CreditStatus.ACTIVE.value
        assert credit.customer_id == customer.id
        assert credit.created_by == user_id

    def test_oldest_due_invoice_paid_first(self, db_session, service, customer, user_id):
        invoice_b = create_invoice(
            db_session, customer.id, "INV-B", "500", due_date=datetime(2024, 2, 1, tzinfo=UTC)
        )
        invoice_a = create_invoice(
            db_session, customer.id, "INV-A", "300", due_date=datetime(2024, 1, 1, tzinfo=UTC)
        )

        payment = pay(service, customer.id, user_id, "400")

        assert invoice_a.balance == Money.zero()
        assert invoice_a.status == InvoiceStatus.PAID.value
        assert invoice_b.balance == m("400")
        assert invoice_b.status == InvoiceStatus.PARTIAL.value
        assert payment.allocated_amount == m("400")
        assert payment.credit_amount == Money.zero()

        applied = {
            a.invoice_id: a.amount_applied
            for a in PaymentApplicationRepository(db_session).get_by_payment_id(payment.id)
        }
        assert applied == {invoice_a.id: m("300"), invoice_b.id: m("100")}


class TestRecordPaymentBoundaries:
    def test_zero_amount_rejected(self, db_session, service, customer, user_id):
        create_invoice(db_session, customer.id, "INV-001", "1000")
        with pytest.raises(InvalidPaymentAmount):
            pay(service, customer.id, user_id, "0")
        assert db_session.query(Payment).count() == 0

    def test_negative_amount_rejected(self, service, customer, user_id):
        with pytest.raises(InvalidPaymentAmount):
            pay(service, customer.id, user_id, "-5")

    def test_exact_total_pays_everything(self, db_session, service, customer, user_id):
        first = create_invoice(db_session, customer.id, "INV-001", "300")
        second = create_invoice(db_session, customer.id, "INV-002", "500")

        payment = pay(service, customer.id, user_id, "800")

        assert first.status == InvoiceStatus.PAID.value
        assert second.status == InvoiceStatus.PAID.value
        assert payment.credit_amount == Money.zero()
        assert db_session.query(Credit).count() == 0

    def test_exactly_one_invoice_balance(self, db_session, service, customer, user_id):
        invoice = create_invoice(db_session, customer.id, "INV-001", "250.75")
        create_invoice(db_session, customer.id, "INV-002", "100")

        payment = pay(service, customer.id, user_id, "250.75")

        assert invoice.status == InvoiceStatus.PAID.value
        assert payment.allocated_amount == m("250.75")
        assert len(PaymentApplicationRepository(db_session).get_by_payment_id(payment.id)) == 1

    def test_no_open_invoices_all_credit(self, db_session, service, customer, user_id):
        payment = pay(service, customer.id, user_id, "150")

        assert payment.allocated_amount == Money.zero()
        assert payment.credit_amount == m("150")
        credit = CreditRepository(db_session).get_by_source_payment_id(payment.id)
        assert credit.available_amount == m("150")

    def test_cancelled_invoices_are_skipped(self, db_session, service, customer, user_id):
        cancelled = create_invoice(
            db_session, customer.id, "INV-001", "100", due_date=datetime(2024, 1, 1, tzinfo=UTC)
        )
        InvoiceBalanceTracker(db_session).cancel(cancelled.id)
        db_session.commit()
        open_invoice = create_invoice(db_session, customer.id, "INV-002", "100")

        pay(service, customer.id, user_id, "50")

        assert cancelled.balance == m("100")
        assert open_invoice.balance == m("50")

    def test_unknown_customer(self, service, user_id):
        with pytest.raises(CustomerNotFound):
            pay(service, uuid4(), user_id, "10")


class TestTargetedPayment:
    def test_pays_only_target(self, db_session, service, customer, user_id):
        oldest = create_invoice(
            db_session, customer.id, "INV-001", "100", due_date=datetime(2024, 1, 1, tzinfo=UTC)
        )
        target = create_invoice(
            db_session, customer.id, "INV-002", "100", due_date=datetime(2024, 6, 1, tzinfo=UTC)
        )

        payment = pay(service, customer.id, user_id, "150", target_invoice_id=target.id)

        assert target.status == InvoiceStatus.PAID.value
        assert oldest.balance == m("100")
        assert payment.allocated_amount == m("100")
        assert payment.credit_amount == m("50")

    def test_target_of_other_customer(self, db_session, service, customer, user_id):
        other = create_customer(db_session, name="Other Customer")
        invoice = create_invoice(db_session, other.id, "INV-001", "100")

        with pytest.raises(InvoiceNotApplicable, match="does not belong"):
            pay(service, customer.id, user_id, "10", target_invoice_id=invoice.id)
        assert invoice.balance == m("100")

    def test_target_already_paid(self, db_session, service, customer, user_id):
        invoice = create_invoice(db_session, customer.id, "INV-001", "100")
        pay(service, customer.id, user_id, "100")

        with pytest.raises(InvoiceNotApplicable, match="fully paid"):
            pay(service, customer.id, user_id, "10", target_invoice_id=invoice.id)

    def test_target_cancelled(self, db_session, service, customer, user_id):
        invoice = create_invoice(db_session, customer.id, "INV-001", "100")
        InvoiceBalanceTracker(db_session).cancel(invoice.id)
        db_session.commit()

        with pytest.raises(InvoiceNotApplicable, match="cancelled"):
            pay(service, customer.id, user_id, "10", target_invoice_id=invoice.id)

    def test_target_missing(self, service, customer, user_id):
        with pytest.raises(InvoiceNotFound):
            pay(service, customer.id, user_id, "10", target_invoice_id=uuid4())


class TestRecordPaymentAtomicity:
    def test_failure_after_allocation_rolls_everything_back(
        self, db_session, service, customer, user_id, monkeypatch
    ):
        invoice = create_invoice(db_session, customer.id, "INV-001", "100")

        def explode(*args, **kwargs):
            raise RuntimeError("database went away")

        monkeypatch.setattr(service.credit_repo, "create", explode)

        with pytest.raises(RuntimeError):
            pay(service, customer.id, user_id, "150")

        assert invoice.balance == m("100")
        assert invoice.status == InvoiceStatus.OPEN.value
        assert db_session.query(Payment).count() == 0
        assert db_session.query(PaymentApplication).count() == 0
        assert db_session.query(AuditLog).count() == 0

    def test_records_one_audit_event(self, db_session, service, customer, user_id):
        invoice = create_invoice(db_session, customer.id, "INV-001", "100")

        payment = pay(service, customer.id, user_id, "120", reference="TRF-0042")

        logs = db_session.query(AuditLog).filter(AuditLog.action == "payment_recorded").all()
        assert len(logs) == 1
        log = logs[0]
        assert log.resource_type == "payment"
        assert log.resource_id == payment.id
        assert log.actor_id == str(user_id)
        assert log.changes["allocated_amount"] == "100.00"
        assert log.changes["credit_amount"] == "20.00"
        assert log.changes["invoices"] == [
            {
                "invoice_id": str(invoice.id),
                "amount_applied": "100.00",
                "balance_before": "100.00",
                "balance_after": "0.00",
                "status": "paid",
            }
        ]


class TestAllocationInvariants:
    def test_split_always_adds_up(self, db_session, service, customer, user_id):
        create_invoice(db_session, customer.id, "INV-001", "123.45")
        create_invoice(db_session, customer.id, "INV-002", "0.55")
        create_invoice(db_session, customer.id, "INV-003", "999.99")

        for amount in ("50", "0.01", "200", "1000", "3.33"):
            payment = pay(service, customer.id, user_id, amount)
            assert payment.amount == payment.allocated_amount + payment.credit_amount
            assert not payment.allocated_amount.is_negative()
            assert not payment.credit_amount.is_negative()

        for invoice in InvoiceRepository(db_session).get_by_customer_id(customer.id):
            applied = Money.sum(
                a.amount_applied
                for a in db_session.query(PaymentApplication).filter(
                    PaymentApplication.invoice_id == invoice.id
                )
            )
            assert invoice.balance == invoice.total_amount - applied
            assert Money.zero() <= invoice.balance <= invoice.total_amount

    def test_same_state_same_split(self, db_session, service, user_id):
        splits = []
        for name in ("First", "Second"):
            customer = create_customer(db_session, name=name)
            create_invoice(
                db_session, customer.id, f"{name}-1", "300",
                due_date=datetime(2024, 1, 1, tzinfo=UTC),
            )
            create_invoice(
                db_session, customer.id, f"{name}-2", "300",
                due_date=datetime(2024, 1, 1, tzinfo=UTC),
            )
            payment = pay(service, customer.id, user_id, "450")
            splits.append(
                [
                    a.amount_applied
                    for a in PaymentApplicationRepository(db_session).get_by_payment_id(payment.id)
                ]
            )

        assert splits[0] == splits[1] == [m("300"), m("150")]

    def test_allocate_skips_settled_invoices(self, db_session, service, customer):
        settled = create_invoice(db_session, customer.id, "INV-001", "100")
        InvoiceBalanceTracker(db_session).apply_amount(settled, m("100"))
        open_invoice = create_invoice(db_session, customer.id, "INV-002", "100")

        plan = service.allocate([settled, open_invoice], m("30"))

        assert [a.invoice for a in plan.applications] == [open_invoice]
        assert plan.allocated == m("30")
        assert plan.remainder == Money.zero()



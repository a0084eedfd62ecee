"""Tests for InvoiceBalanceTracker."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from ledger.core.money import Money
from ledger.models.invoice import InvoiceStatus
from ledger.services.errors import InvalidAllocationAmount, InvalidInvoiceState, InvoiceNotFound
from ledger.services.invoice_balance import InvoiceBalanceTracker, is_overdue
from tests.conftest import create_customer, create_invoice


@pytest.fixture
def tracker(db_session):
    return InvoiceBalanceTracker(db_session)


@pytest.fixture
def customer(db_session):
    return create_customer(db_session)


class TestApplyAmount:
    def test_partial_payment(self, db_session, tracker, customer):
        invoice = create_invoice(db_session, customer.id, "INV-001", "1000")

        tracker.apply_amount(invoice, Money.from_decimal("600"))

        assert invoice.balance == Money.from_decimal("400")
        assert invoice.status == InvoiceStatus.PARTIAL.value

    def test_full_payment(self, db_session, tracker, customer):
        invoice = create_invoice(db_session, customer.id, "INV-001", "1000")

        tracker.apply_amount(invoice, Money.from_decimal("1000"))

        assert invoice.balance.is_zero()
        assert invoice.status == InvoiceStatus.PAID.value

    def test_overdue_stays_overdue_while_balance_remains(self, db_session, tracker, customer):
        invoice = create_invoice(
            db_session,
            customer.id,
            "INV-001",
            "1000",
            due_date=datetime(2024, 1, 1, tzinfo=UTC),
        )
        invoice.status = InvoiceStatus.OVERDUE.value

        tracker.apply_amount(invoice, Money.from_decimal("100"))
        assert invoice.status == InvoiceStatus.OVERDUE.value

        tracker.apply_amount(invoice, Money.from_decimal("900"))
        assert invoice.status == InvoiceStatus.PAID.value

    def test_bumps_version(self, db_session, tracker, customer):
        invoice = create_invoice(db_session, customer.id, "INV-001", "1000")
        version = invoice.version

        tracker.apply_amount(invoice, Money.from_decimal("1"))

        assert invoice.version == version + 1

    def test_rejects_zero(self, db_session, tracker, customer):
        invoice = create_invoice(db_session, customer.id, "INV-001", "1000")
        with pytest.raises(InvalidAllocationAmount, match="positive"):
            tracker.apply_amount(invoice, Money.zero())
        assert invoice.balance == Money.from_decimal("1000")

    def test_rejects_more_than_balance(self, db_session, tracker, customer):
        invoice = create_invoice(db_session, customer.id, "INV-001", "1000")
        with pytest.raises(InvalidAllocationAmount, match="exceeds balance"):
            tracker.apply_amount(invoice, Money.from_decimal("1000.01"))
        assert invoice.balance == Money.from_decimal("1000")
        assert invoice.status == InvoiceStatus.OPEN.value

    def test_rejects_cancelled_invoice(self, db_session, tracker, customer):
        invoice = create_invoice(db_session, customer.id, "INV-001", "1000")
        tracker.cancel(invoice.id)
        with pytest.raises(InvalidAllocationAmount, match="cancelled"):
            tracker.apply_amount(invoice, Money.from_decimal("1"))


class TestSelectOpenInvoices:
    def test_oldest_due_first_with_deterministic_tie_break(self, db_session, tracker, customer):
        create_invoice(
            db_session, customer.id, "INV-004", "100", due_date=None,
            issue_date=datetime(2023, 1, 1, tzinfo=UTC),
        )
        create_invoice(
            db_session, customer.id, "INV-003", "100",
            due_date=datetime(2024, 2, 1, tzinfo=UTC),
            issue_date=datetime(2024, 1, 5, tzinfo=UTC),
        )
        create_invoice(
            db_session, customer.id, "INV-002", "100",
            due_date=datetime(2024, 2, 1, tzinfo=UTC),
            issue_date=datetime(2024, 1, 5, tzinfo=UTC),
        )
        create_invoice(
            db_session, customer.id, "INV-005", "100",
            due_date=datetime(2024, 2, 1, tzinfo=UTC),
            issue_date=datetime(2024, 1, 2, tzinfo=UTC),
        )
        create_invoice(
            db_session, customer.id, "INV-001", "100",
            due_date=datetime(2024, 1, 1, tzinfo=UTC),
        )

        numbers = [i.invoice_number for i in tracker.select_open_invoices(customer.id)]

        assert numbers == ["INV-001", "INV-005", "INV-002", "INV-003", "INV-004"]

    def test_excludes_paid_cancelled_and_other_customers(self, db_session, tracker, customer):
        other = create_customer(db_session, name="Other Customer")
        paid = create_invoice(db_session, customer.id, "INV-001", "100")
        cancelled = create_invoice(db_session, customer.id, "INV-002", "100")
        create_invoice(db_session, customer.id, "INV-003", "100")
        create_invoice(db_session, other.id, "INV-004", "100")

        tracker.apply_amount(paid, Money.from_decimal("100"))
        tracker.cancel(cancelled.id)
        db_session.commit()

        numbers = [i.invoice_number for i in tracker.select_open_invoices(customer.id)]
        assert numbers == ["INV-003"]

    def test_fresh_query_each_call(self, db_session, tracker, customer):
        invoice = create_invoice(db_session, customer.id, "INV-001", "100")
        assert len(tracker.select_open_invoices(customer.id, lock=True)) == 1

        tracker.apply_amount(invoice, Money.from_decimal("100"))

        assert tracker.select_open_invoices(customer.id, lock=True) == []


class TestCancel:
    def test_cancel_untouched_invoice(self, db_session, tracker, customer):
        invoice = create_invoice(db_session, customer.id, "INV-001", "100")

        cancelled = tracker.cancel(invoice.id)

        assert cancelled.status == InvoiceStatus.CANCELLED.value
        assert cancelled.cancelled_at is not None
        assert cancelled.balance == Money.from_decimal("100")

    def test_cannot_cancel_after_allocation(self, db_session, tracker, customer):
        invoice = create_invoice(db_session, customer.id, "INV-001", "100")
        tracker.apply_amount(invoice, Money.from_decimal("10"))

        with pytest.raises(InvalidInvoiceState, match="cannot be cancelled"):
            tracker.cancel(invoice.id)

    def test_cannot_cancel_twice(self, db_session, tracker, customer):
        invoice = create_invoice(db_session, customer.id, "INV-001", "100")
        tracker.cancel(invoice.id)

        with pytest.raises(InvalidInvoiceState, match="already cancelled"):
            tracker.cancel(invoice.id)

    def test_unknown_invoice(self, tracker):
        with pytest.raises(InvoiceNotFound):
            tracker.cancel(uuid4())


class TestMarkOverdue:
    def test_flags_past_due_open_and_partial(self, db_session, tracker, customer):
        now = datetime(2024, 3, 1, tzinfo=UTC)
        past_open = create_invoice(
            db_session, customer.id, "INV-001", "100", due_date=now - timedelta(days=10)
        )
        past_partial = create_invoice(
            db_session, customer.id, "INV-002", "100", due_date=now - timedelta(days=1)
        )
        future = create_invoice(
            db_session, customer.id, "INV-003", "100", due_date=now + timedelta(days=1)
        )
        no_due = create_invoice(db_session, customer.id, "INV-004", "100")
        past_paid = create_invoice(
            db_session, customer.id, "INV-005", "100", due_date=now - timedelta(days=5)
        )
        tracker.apply_amount(past_partial, Money.from_decimal("40"))
        tracker.apply_amount(past_paid, Money.from_decimal("100"))

        assert tracker.mark_overdue(now) == 2

        assert past_open.status == InvoiceStatus.OVERDUE.value
        assert past_partial.status == InvoiceStatus.OVERDUE.value
        assert future.status == InvoiceStatus.OPEN.value
        assert no_due.status == InvoiceStatus.OPEN.value
        assert past_paid.status == InvoiceStatus.PAID.value

    def test_nothing_to_flag(self, tracker):
        assert tracker.mark_overdue(datetime(2024, 3, 1, tzinfo=UTC)) == 0


class TestIsOverdue:
    def test_past_due_open_invoice(self, db_session, customer):
        invoice = create_invoice(
            db_session, customer.id, "INV-001", "100", due_date=datetime(2024, 1, 1, tzinfo=UTC)
        )
        assert is_overdue(invoice, datetime(2024, 1, 2, tzinfo=UTC))
        assert not is_overdue(invoice, datetime(2023, 12, 31, tzinfo=UTC))

    def test_no_due_date(self, db_session, customer):
        invoice = create_invoice(db_session, customer.id, "INV-001", "100")
        assert not is_overdue(invoice, datetime(2030, 1, 1, tzinfo=UTC))

"""Tests for the loan ledger state machine."""

from datetime import datetime
from decimal import Decimal

import pytest

from app.core.errors import (
    ConflictError,
    ExceedsBalanceError,
    InvalidPaymentError,
    InvalidStatusError,
    InvalidStatusTransitionError,
    LoanNotActiveError,
    LoanNotFoundError,
)
from app.models import Loan, LoanPayment, LoanStatus
from app.repositories import LoanRepository
from app.services import ledger


def make_loan(balance="1200.00", status="ACTIVE", principal="1200.00"):
    return Loan(
        id=1,
        staff_id=1,
        loan_amount=Decimal(principal),
        duration_months=12,
        monthly_payment=Decimal("100.00"),
        outstanding_balance=Decimal(balance),
        status=status,
        start_date=datetime(2024, 1, 1),
    )


class TestPlanPayment:
    def test_partial_payment_stays_active(self):
        plan = ledger.plan_payment(make_loan(), 200)
        assert plan.new_balance == Decimal("1000.00")
        assert plan.new_status is LoanStatus.ACTIVE
        assert plan.end_date is None
        assert not plan.closes_loan

    def test_full_payment_closes_loan(self):
        now = datetime(2024, 6, 1, 12, 0)
        plan = ledger.plan_payment(make_loan(), 1200, now=now)
        assert plan.new_balance == Decimal("0.00")
        assert plan.new_status is LoanStatus.FULLY_PAID
        assert plan.end_date == now
        assert plan.closes_loan

    @pytest.mark.parametrize("amount", [0, -5, None, ""])
    def test_rejects_non_positive_or_missing(self, amount):
        with pytest.raises(InvalidPaymentError):
            ledger.plan_payment(make_loan(), amount)

    @pytest.mark.parametrize("amount", [100.004, "0.001", "1199.995"])
    def test_rejects_sub_cent_amounts(self, amount):
        with pytest.raises(InvalidPaymentError, match="at most 2 decimal places"):
            ledger.plan_payment(make_loan(), amount)

    def test_accepts_whole_cents(self):
        plan = ledger.plan_payment(make_loan(), 100.1)
        assert plan.new_balance == Decimal("1099.90")

    def test_rejects_non_numeric(self):
        with pytest.raises(InvalidPaymentError):
            ledger.plan_payment(make_loan(), "lots")

    def test_rejects_overdraw(self):
        with pytest.raises(ExceedsBalanceError):
            ledger.plan_payment(make_loan(), 1300)

    @pytest.mark.parametrize("status", ["SUSPENDED", "FULLY_PAID", "BAD_DEBT"])
    def test_rejects_inactive(self, status):
        with pytest.raises(LoanNotActiveError):
            ledger.plan_payment(make_loan(status=status), 100)

    def test_snapshot_is_not_mutated(self):
        loan = make_loan()
        ledger.plan_payment(loan, 200)
        assert loan.outstanding_balance == Decimal("1200.00")
        assert loan.status == "ACTIVE"


class TestRecordPayment:
    def test_round_trip(self, session, loan):
        repo = LoanRepository(session)
        payment, updated = ledger.record_payment(repo, loan.id, 250, notes="March")

        assert payment.remaining_balance == Decimal("950.00")
        assert updated.outstanding_balance == Decimal("950.00")
        assert updated.status == "ACTIVE"
        assert updated.end_date is None

        reread = LoanRepository(session).get_loan(loan.id, for_update=True)
        assert reread.outstanding_balance == Decimal("950.00")
        assert [p.id for p in reread.payments] == [payment.id]

    def test_payoff_sets_end_date(self, session, loan):
        repo = LoanRepository(session)
        payment, updated = ledger.record_payment(repo, loan.id, 1200)

        assert updated.outstanding_balance == Decimal("0.00")
        assert updated.status == "FULLY_PAID"
        assert updated.end_date is not None
        assert payment.remaining_balance == Decimal("0.00")

    def test_paid_off_loan_rejects_more(self, session, loan):
        repo = LoanRepository(session)
        ledger.record_payment(repo, loan.id, 1200)
        with pytest.raises(LoanNotActiveError):
            ledger.record_payment(repo, loan.id, 1)

    def test_sub_cent_amount_leaves_loan_unchanged(self, session, loan):
        repo = LoanRepository(session)
        with pytest.raises(InvalidPaymentError):
            ledger.record_payment(repo, loan.id, 100.004)

        assert repo.get_loan(loan.id, for_update=True).outstanding_balance == Decimal("1200.00")
        assert session.query(LoanPayment).count() == 0

    def test_rejection_leaves_loan_unchanged(self, session, loan):
        repo = LoanRepository(session)
        with pytest.raises(ExceedsBalanceError):
            ledger.record_payment(repo, loan.id, 1300)

        reread = repo.get_loan(loan.id, for_update=True)
        assert reread.outstanding_balance == Decimal("1200.00")
        assert reread.status == "ACTIVE"
        assert session.query(LoanPayment).count() == 0

    def test_missing_loan(self, session):
        with pytest.raises(LoanNotFoundError):
            ledger.record_payment(LoanRepository(session), 999, 10)

    def test_invalid_amount_checked_before_lookup(self, session):
        # no loan 999 exists, the amount error wins
        with pytest.raises(InvalidPaymentError):
            ledger.record_payment(LoanRepository(session), 999, 0)

    def test_sequence_of_payments_is_monotone(self, session, loan):
        repo = LoanRepository(session)
        balances = []
        for amount in (100, 250, 0.5, 849.5):
            _, updated = ledger.record_payment(repo, loan.id, amount)
            balances.append(updated.outstanding_balance)

        assert balances == sorted(balances, reverse=True)
        assert balances[-1] == Decimal("0.00")
        assert updated.status == "FULLY_PAID"


class RacingRepository(LoanRepository):
    """Lets a rival session commit a payment right before our own commit."""

    def __init__(self, db, rival: LoanRepository, rival_amount):
        super().__init__(db)
        self.rival = rival
        self.rival_amount = rival_amount
        self.commit_calls = 0

    def commit_payment(self, loan, plan, amount, payment_date=None, notes=None):
        self.commit_calls += 1
        if self.commit_calls == 1:
            ledger.record_payment(self.rival, loan.id, self.rival_amount)
        return super().commit_payment(loan, plan, amount, payment_date=payment_date, notes=notes)


class TestConcurrentPayments:
    def test_stale_snapshot_is_rejected(self, session_factory, loan):
        s1, s2 = session_factory(), session_factory()
        try:
            repo1 = LoanRepository(s1)
            snapshot = repo1.get_loan(loan.id, for_update=True)
            plan = ledger.plan_payment(snapshot, 700)

            ledger.record_payment(LoanRepository(s2), loan.id, 700)

            with pytest.raises(ConflictError):
                repo1.commit_payment(snapshot, plan, 700)

            # nothing from the failed attempt was written
            assert s1.query(LoanPayment).count() == 1
        finally:
            s1.close()
            s2.close()

    def test_two_700_payments_against_1000(self, session_factory, session, staff):
        loan = LoanRepository(session).create_loan(staff.id, 1000, 10)
        s1, s2 = session_factory(), session_factory()
        try:
            racing = RacingRepository(s1, LoanRepository(s2), rival_amount=700)

            with pytest.raises(ExceedsBalanceError):
                ledger.record_payment(racing, loan.id, 700)

            assert racing.commit_calls == 1
            final = LoanRepository(s1).get_loan(loan.id, for_update=True)
            assert final.outstanding_balance == Decimal("300.00")
            assert final.status == "ACTIVE"
            assert len(final.payments) == 1
        finally:
            s1.close()
            s2.close()

    def test_conflict_is_retried_when_payment_still_fits(self, session_factory, session, staff):
        loan = LoanRepository(session).create_loan(staff.id, 1000, 10)
        s1, s2 = session_factory(), session_factory()
        try:
            racing = RacingRepository(s1, LoanRepository(s2), rival_amount=300)
            payment, updated = ledger.record_payment(racing, loan.id, 500)

            assert racing.commit_calls == 2
            assert payment.remaining_balance == Decimal("200.00")
            assert updated.outstanding_balance == Decimal("200.00")
            remaining = sorted(p.remaining_balance for p in updated.payments)
            assert remaining == [Decimal("200.00"), Decimal("700.00")]
        finally:
            s1.close()
            s2.close()

    def test_gives_up_after_max_attempts(self, session, loan):
        class AlwaysConflicting(LoanRepository):
            calls = 0

            def commit_payment(self, *args, **kwargs):
                self.calls += 1
                raise ConflictError("Loan was modified concurrently")

        repo = AlwaysConflicting(session)
        with pytest.raises(ConflictError):
            ledger.record_payment(repo, loan.id, 100, max_attempts=3)
        assert repo.calls == 3


class TestChangeStatus:
    def test_suspend_then_payment_rejected(self, session, loan):
        repo = LoanRepository(session)
        updated = ledger.change_status(repo, loan.id, status="SUSPENDED")
        assert updated.status == "SUSPENDED"

        with pytest.raises(LoanNotActiveError):
            ledger.record_payment(repo, loan.id, 100)

    def test_bad_debt_keeps_balance_and_no_end_date(self, session, loan):
        repo = LoanRepository(session)
        ledger.record_payment(repo, loan.id, 200)
        updated = ledger.change_status(repo, loan.id, status="BAD_DEBT")

        assert updated.status == "BAD_DEBT"
        assert updated.outstanding_balance == Decimal("1000.00")
        assert updated.end_date is None

    def test_reactivate(self, session, loan):
        repo = LoanRepository(session)
        ledger.change_status(repo, loan.id, status="SUSPENDED")
        updated = ledger.change_status(repo, loan.id, status="ACTIVE")
        assert updated.status == "ACTIVE"

    def test_invalid_status(self, session, loan):
        with pytest.raises(InvalidStatusError):
            ledger.change_status(LoanRepository(session), loan.id, status="CLOSED")

    def test_notes_only(self, session, loan):
        updated = ledger.change_status(
            LoanRepository(session), loan.id, notes="salary advance", set_notes=True
        )
        assert updated.notes == "salary advance"
        assert updated.status == "ACTIVE"

    def test_cannot_mark_fully_paid_with_balance(self, session, loan):
        repo = LoanRepository(session)
        with pytest.raises(InvalidStatusTransitionError):
            ledger.change_status(repo, loan.id, status="FULLY_PAID")

        current = repo.get_loan(loan.id, for_update=True)
        assert current.status == "ACTIVE"
        assert current.outstanding_balance == Decimal("1200.00")

    @pytest.mark.parametrize("status", ["ACTIVE", "SUSPENDED", "BAD_DEBT"])
    def test_fully_paid_is_final(self, session, loan, status):
        repo = LoanRepository(session)
        ledger.record_payment(repo, loan.id, 1200)

        with pytest.raises(InvalidStatusTransitionError):
            ledger.change_status(repo, loan.id, status=status)
        assert repo.get_loan(loan.id, for_update=True).status == "FULLY_PAID"

    def test_fully_paid_accepts_same_status_and_notes(self, session, loan):
        repo = LoanRepository(session)
        ledger.record_payment(repo, loan.id, 1200)
        updated = ledger.change_status(
            repo, loan.id, status="FULLY_PAID", notes="settled", set_notes=True
        )
        assert updated.status == "FULLY_PAID"
        assert updated.notes == "settled"

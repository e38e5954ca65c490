# backoffice/workflows/security_deposits.py
from __future__ import annotations

from typing import Optional

from sqlalchemy import select

from ..domain.dividends import PooledDeposit, calculate_dividends, split_earnings
from ..domain.statuses import DividendPaymentMethod, DividendStatus, PoolStatus
from ..domain.transitions import DIVIDEND_TRANSITIONS, POOL_TRANSITIONS
from ..models import (
    SecurityDeposit,
    SecurityDepositDividend,
    SecurityDepositInvestmentPool,
    _utcnow,
)
from .base import WorkflowService
from .result import WorkflowResult

POOL = "SecurityDepositInvestmentPool"
DIVIDEND = "SecurityDepositDividend"


class SecurityDepositWorkflow(WorkflowService):
    """
    Yearly investment pool over held security deposits.

    Open -> Calculated -> Distributed -> Closed. Earnings are recorded while the
    pool is open; calculation fans out one dividend row per qualifying deposit.
    """

    def _pool_for_year(self, year: int) -> Optional[SecurityDepositInvestmentPool]:
        return self.db.scalar(
            select(SecurityDepositInvestmentPool).where(
                SecurityDepositInvestmentPool.org_id == self.org_id,
                SecurityDepositInvestmentPool.year == int(year),
                SecurityDepositInvestmentPool.is_deleted.is_(False),
            )
        )

    def _pool_transition(self, pool: SecurityDepositInvestmentPool, new_status: PoolStatus, action: str, metadata=None) -> Optional[str]:
        if not POOL_TRANSITIONS.is_valid_transition(pool.status, new_status):
            return POOL_TRANSITIONS.invalid_transition_reason(pool.status, new_status)
        old = pool.status
        pool.status = new_status
        self._touch(pool)
        self._log_transition(POOL, pool.id, old, new_status, action, metadata=metadata)
        return None

    def _dividend_transition(self, div: SecurityDepositDividend, new_status: DividendStatus, action: str, metadata=None) -> Optional[str]:
        if not DIVIDEND_TRANSITIONS.is_valid_transition(div.status, new_status):
            return DIVIDEND_TRANSITIONS.invalid_transition_reason(div.status, new_status)
        old = div.status
        div.status = new_status
        self._touch(div)
        self._log_transition(DIVIDEND, div.id, old, new_status, action, metadata=metadata)
        return None

    # -----------------------------
    # Pool
    # -----------------------------
    def get_or_create_investment_pool(self, year: int) -> WorkflowResult[SecurityDepositInvestmentPool]:
        def op() -> WorkflowResult[SecurityDepositInvestmentPool]:
            pool = self._pool_for_year(year)
            if pool is not None:
                return WorkflowResult.ok("Investment pool loaded", pool)

            pool = self._new(
                SecurityDepositInvestmentPool,
                year=int(year),
                organization_share_percentage=float(self._org_settings().organization_share_percentage),
                status=PoolStatus.OPEN,
            )
            self.db.flush()
            self._log_transition(POOL, pool.id, None, PoolStatus.OPEN, "CreateInvestmentPool", metadata={"year": int(year)})
            return WorkflowResult.ok(f"Investment pool for {year} created", pool)

        return self._execute(op)

    def record_investment_performance(
        self,
        year: int,
        *,
        starting_balance: float,
        ending_balance: float,
        total_earnings: float,
    ) -> WorkflowResult[SecurityDepositInvestmentPool]:
        def op() -> WorkflowResult[SecurityDepositInvestmentPool]:
            res = self.get_or_create_investment_pool(year)
            if not res.success:
                return res
            pool = res.data
            if pool.status != PoolStatus.OPEN:
                return WorkflowResult.fail(f"Investment pool for {year} is {pool.status.value}; performance is locked")
            if starting_balance < 0 or ending_balance < 0:
                return WorkflowResult.fail("Balances cannot be negative")

            split = split_earnings(
                total_earnings=total_earnings,
                share_percentage=pool.organization_share_percentage,
                starting_balance=starting_balance,
            )
            pool.starting_balance = round(float(starting_balance), 2)
            pool.ending_balance = round(float(ending_balance), 2)
            pool.total_earnings = split.total_earnings
            pool.return_rate = split.return_rate
            pool.organization_share = split.organization_share
            pool.tenant_share_total = split.tenant_share_total
            self._touch(pool)
            return WorkflowResult.ok("Investment performance recorded", pool)

        return self._execute(op)

    def calculate_dividends(self, year: int) -> WorkflowResult[SecurityDepositInvestmentPool]:
        def op() -> WorkflowResult[SecurityDepositInvestmentPool]:
            pool = self._pool_for_year(year)
            if pool is None:
                return WorkflowResult.fail(f"No investment pool recorded for {year}")
            if pool.status != PoolStatus.OPEN:
                return WorkflowResult.fail(
                    POOL_TRANSITIONS.invalid_transition_reason(pool.status, PoolStatus.CALCULATED)
                )

            deposits = self.db.scalars(
                select(SecurityDeposit).where(
                    SecurityDeposit.org_id == self.org_id,
                    SecurityDeposit.is_deleted.is_(False),
                    SecurityDeposit.in_investment_pool.is_(True),
                )
            ).all()
            batch = calculate_dividends(
                year=int(year),
                tenant_share_total=pool.tenant_share_total,
                deposits=[
                    PooledDeposit(
                        deposit_id=d.id,
                        lease_id=d.lease_id,
                        tenant_id=d.tenant_id,
                        in_investment_pool=d.in_investment_pool,
                        pool_entry_date=d.pool_entry_date,
                        pool_exit_date=d.pool_exit_date,
                    )
                    for d in deposits
                ],
            )

            existing = set(
                self.db.scalars(
                    select(SecurityDepositDividend.deposit_id).where(
                        SecurityDepositDividend.org_id == self.org_id,
                        SecurityDepositDividend.year == int(year),
                    )
                ).all()
            )

            org_settings = self._org_settings()
            method = (
                DividendPaymentMethod.PENDING
                if org_settings.allow_tenant_dividend_choice
                else DividendPaymentMethod(org_settings.default_dividend_payment_method)
            )

            created = 0
            for line in batch.lines:
                if line.deposit_id in existing:
                    continue
                self._new(
                    SecurityDepositDividend,
                    deposit_id=line.deposit_id,
                    pool_id=pool.id,
                    lease_id=line.lease_id,
                    tenant_id=line.tenant_id,
                    year=int(year),
                    base_dividend_amount=line.base_dividend_amount,
                    proration_factor=line.proration_factor,
                    months_in_pool=line.months_in_pool,
                    dividend_amount=line.dividend_amount,
                    payment_method=method,
                    status=DividendStatus.PENDING,
                )
                created += 1

            pool.active_lease_count = batch.active_lease_count
            pool.dividend_per_lease = batch.dividend_per_lease
            pool.dividends_calculated_on = _utcnow()
            self._pool_transition(
                pool,
                PoolStatus.CALCULATED,
                "CalculateDividends",
                {"dividends_created": created, "dividend_per_lease": batch.dividend_per_lease},
            )
            return WorkflowResult.ok(f"{created} dividend(s) calculated for {year}", pool)

        return self._execute(op)

    def mark_dividends_distributed(self, year: int) -> WorkflowResult[SecurityDepositInvestmentPool]:
        def op() -> WorkflowResult[SecurityDepositInvestmentPool]:
            pool = self._pool_for_year(year)
            if pool is None:
                return WorkflowResult.fail(f"No investment pool recorded for {year}")

            unpaid = self.db.scalar(
                select(SecurityDepositDividend.id).where(
                    SecurityDepositDividend.org_id == self.org_id,
                    SecurityDepositDividend.pool_id == pool.id,
                    SecurityDepositDividend.status.not_in([DividendStatus.APPLIED, DividendStatus.PAID]),
                )
            )
            if unpaid is not None:
                return WorkflowResult.fail("All dividends must be applied or paid before the pool is distributed")

            pool.dividends_distributed_on = _utcnow()
            err = self._pool_transition(pool, PoolStatus.DISTRIBUTED, "DistributeDividends")
            if err:
                return WorkflowResult.fail(err)
            return WorkflowResult.ok(f"Dividends for {year} distributed", pool)

        return self._execute(op)

    def close_investment_pool(self, year: int) -> WorkflowResult[SecurityDepositInvestmentPool]:
        def op() -> WorkflowResult[SecurityDepositInvestmentPool]:
            pool = self._pool_for_year(year)
            if pool is None:
                return WorkflowResult.fail(f"No investment pool recorded for {year}")
            err = self._pool_transition(pool, PoolStatus.CLOSED, "CloseInvestmentPool")
            if err:
                return WorkflowResult.fail(err)
            return WorkflowResult.ok(f"Investment pool for {year} closed", pool)

        return self._execute(op)

    # -----------------------------
    # Dividends
    # -----------------------------
    def record_dividend_choice(
        self,
        dividend_id: int,
        *,
        payment_method: DividendPaymentMethod,
        mailing_address: Optional[str] = None,
    ) -> WorkflowResult[SecurityDepositDividend]:
        def op() -> WorkflowResult[SecurityDepositDividend]:
            div = self._get(SecurityDepositDividend, dividend_id)
            if div is None:
                return WorkflowResult.fail("Dividend not found")
            method = DividendPaymentMethod(payment_method)
            if method == DividendPaymentMethod.PENDING:
                return WorkflowResult.fail("Choose Lease Credit or Check")
            if method == DividendPaymentMethod.CHECK and not (mailing_address or "").strip():
                return WorkflowResult.fail("Mailing address is required for check payments")

            div.payment_method = method
            div.mailing_address = (mailing_address or "").strip() or None
            div.choice_made_on = _utcnow()
            err = self._dividend_transition(div, DividendStatus.CHOICE_MADE, "RecordDividendChoice", {"payment_method": method.value})
            if err:
                return WorkflowResult.fail(err)
            return WorkflowResult.ok("Dividend payment choice recorded", div)

        return self._execute(op)

    def process_dividend_payment(
        self,
        dividend_id: int,
        *,
        payment_reference: Optional[str] = None,
    ) -> WorkflowResult[SecurityDepositDividend]:
        def op() -> WorkflowResult[SecurityDepositDividend]:
            div = self._get(SecurityDepositDividend, dividend_id)
            if div is None:
                return WorkflowResult.fail("Dividend not found")
            if div.payment_method == DividendPaymentMethod.PENDING:
                return WorkflowResult.fail("Dividend payment method has not been chosen")

            new_status = (
                DividendStatus.APPLIED if div.payment_method == DividendPaymentMethod.LEASE_CREDIT else DividendStatus.PAID
            )
            div.payment_reference = payment_reference
            div.payment_processed_on = _utcnow()
            err = self._dividend_transition(div, new_status, "ProcessDividendPayment", {"amount": div.dividend_amount})
            if err:
                return WorkflowResult.fail(err)
            return WorkflowResult.ok(f"Dividend {new_status.value.lower()}", div)

        return self._execute(op)

    def list_dividends(self, year: int) -> list[SecurityDepositDividend]:
        q = (
            select(SecurityDepositDividend)
            .where(SecurityDepositDividend.org_id == self.org_id, SecurityDepositDividend.year == int(year))
            .order_by(SecurityDepositDividend.id.asc())
        )
        return list(self.db.scalars(q).all())

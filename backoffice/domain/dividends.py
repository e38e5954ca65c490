# backoffice/domain/dividends.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

# -----------------------------------------------------------------------------
# Security-deposit investment pool math.
#
# Pure functions over plain values so the yearly batch can be reasoned about
# (and tested) without a database. Money is rounded to cents at the edges only.
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class EarningsSplit:
    total_earnings: float
    organization_share_percentage: float
    organization_share: float
    tenant_share_total: float
    return_rate: float


@dataclass(frozen=True)
class PooledDeposit:
    deposit_id: int
    lease_id: int
    tenant_id: int
    in_investment_pool: bool
    pool_entry_date: Optional[date]
    pool_exit_date: Optional[date]


@dataclass(frozen=True)
class DividendLine:
    deposit_id: int
    lease_id: int
    tenant_id: int
    months_in_pool: int
    proration_factor: float
    base_dividend_amount: float
    dividend_amount: float


@dataclass(frozen=True)
class DividendBatch:
    year: int
    active_lease_count: int
    dividend_per_lease: float
    lines: list[DividendLine]

    @property
    def total_distributed(self) -> float:
        return round(sum(x.dividend_amount for x in self.lines), 2)


def split_earnings(*, total_earnings: float, share_percentage: float, starting_balance: float = 0.0) -> EarningsSplit:
    """
    Organization keeps `share_percentage` of positive earnings, tenants get the rest.
    A loss (or zero) is absorbed entirely by the organization: both shares are 0.
    """
    earnings = float(total_earnings or 0.0)
    pct = float(share_percentage or 0.0)

    if earnings > 0:
        org_share = round(earnings * pct, 2)
        tenant_share = round(earnings - org_share, 2)
    else:
        org_share = 0.0
        tenant_share = 0.0

    rate = round(earnings / starting_balance, 6) if starting_balance and starting_balance > 0 else 0.0

    return EarningsSplit(
        total_earnings=round(earnings, 2),
        organization_share_percentage=pct,
        organization_share=org_share,
        tenant_share_total=max(tenant_share, 0.0),
        return_rate=rate,
    )


def qualifies_for_year(dep: PooledDeposit, year: int) -> bool:
    if not dep.in_investment_pool or dep.pool_entry_date is None:
        return False
    if dep.pool_entry_date > date(year, 12, 31):
        return False
    return dep.pool_exit_date is None or dep.pool_exit_date >= date(year, 1, 1)


def months_in_pool(entry: date, exit_: Optional[date], year: int) -> int:
    """Calendar months touched inside `year`, counting partial months as whole ones."""
    start = max(entry, date(year, 1, 1))
    end = min(exit_, date(year, 12, 31)) if exit_ is not None else date(year, 12, 31)
    if end < start:
        return 0
    return (end.year - start.year) * 12 + end.month - start.month + 1


def proration_factor(months: int) -> float:
    return round(min(max(months / 12.0, 0.0), 1.0), 6)


def calculate_dividends(*, year: int, tenant_share_total: float, deposits: Sequence[PooledDeposit]) -> DividendBatch:
    eligible = [d for d in deposits if qualifies_for_year(d, year)]

    if not eligible or tenant_share_total <= 0:
        return DividendBatch(year=year, active_lease_count=0, dividend_per_lease=0.0, lines=[])

    per_lease = round(tenant_share_total / len(eligible), 2)

    lines: list[DividendLine] = []
    for d in eligible:
        months = months_in_pool(d.pool_entry_date, d.pool_exit_date, year)  # type: ignore[arg-type]
        factor = proration_factor(months)
        lines.append(
            DividendLine(
                deposit_id=d.deposit_id,
                lease_id=d.lease_id,
                tenant_id=d.tenant_id,
                months_in_pool=months,
                proration_factor=factor,
                base_dividend_amount=per_lease,
                dividend_amount=round(per_lease * factor, 2),
            )
        )

    return DividendBatch(year=year, active_lease_count=len(eligible), dividend_per_lease=per_lease, lines=lines)

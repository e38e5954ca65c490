# backoffice/domain/transitions.py
from __future__ import annotations

import enum
from typing import Generic, Iterable, Mapping, TypeVar

from .statuses import (
    ApplicationStatus,
    DepositStatus,
    DividendStatus,
    LeaseOfferStatus,
    LeaseStatus,
    PoolStatus,
    TourStatus,
)

S = TypeVar("S", bound=enum.Enum)


class TransitionTable(Generic[S]):
    """
    Adjacency table for one status enum.

    Statuses missing from `edges` are terminal. Every key and target must be a
    member of `status_type`; anything else is rejected at import time.
    """

    def __init__(self, entity_type: str, status_type: type[S], edges: Mapping[S, Iterable[S]]):
        self.entity_type = entity_type
        self.status_type = status_type

        table: dict[S, frozenset[S]] = {s: frozenset() for s in status_type}
        for src, targets in edges.items():
            if not isinstance(src, status_type):
                raise TypeError(f"{entity_type}: {src!r} is not a {status_type.__name__}")
            tset = frozenset(targets)
            for t in tset:
                if not isinstance(t, status_type):
                    raise TypeError(f"{entity_type}: {t!r} is not a {status_type.__name__}")
            table[src] = tset
        self._table = table

    def _coerce(self, status) -> S:
        if isinstance(status, self.status_type):
            return status
        return self.status_type(status)

    def valid_next_states(self, current) -> frozenset[S]:
        return self._table[self._coerce(current)]

    def is_valid_transition(self, from_status, to_status) -> bool:
        return self._coerce(to_status) in self.valid_next_states(from_status)

    def is_terminal(self, status) -> bool:
        return not self.valid_next_states(status)

    def invalid_transition_reason(self, from_status, to_status) -> str:
        src = self._coerce(from_status)
        dst = self._coerce(to_status)
        valid = sorted(s.value for s in self._table[src])
        if not valid:
            return f"Cannot transition from {src.value} to {dst.value}. {src.value} is a terminal status"
        return f"Cannot transition from {src.value} to {dst.value}. Valid next states: {', '.join(valid)}"


# -----------------------------
# Per-entity tables
# -----------------------------
A = ApplicationStatus
APPLICATION_TRANSITIONS: TransitionTable[ApplicationStatus] = TransitionTable(
    "RentalApplication",
    ApplicationStatus,
    {
        A.SUBMITTED: {A.UNDER_REVIEW, A.DENIED, A.WITHDRAWN, A.EXPIRED},
        A.UNDER_REVIEW: {A.SCREENING, A.DENIED, A.WITHDRAWN, A.EXPIRED},
        A.SCREENING: {A.APPROVED, A.DENIED, A.WITHDRAWN},
        A.APPROVED: {A.LEASE_OFFERED, A.DENIED},
        A.LEASE_OFFERED: {A.LEASE_ACCEPTED, A.LEASE_DECLINED, A.EXPIRED},
    },
)

LEASE_OFFER_TRANSITIONS: TransitionTable[LeaseOfferStatus] = TransitionTable(
    "LeaseOffer",
    LeaseOfferStatus,
    {
        LeaseOfferStatus.PENDING: {
            LeaseOfferStatus.ACCEPTED,
            LeaseOfferStatus.DECLINED,
            LeaseOfferStatus.EXPIRED,
            LeaseOfferStatus.WITHDRAWN,
        },
    },
)

TOUR_TRANSITIONS: TransitionTable[TourStatus] = TransitionTable(
    "Tour",
    TourStatus,
    {TourStatus.SCHEDULED: {TourStatus.COMPLETED, TourStatus.CANCELLED, TourStatus.NO_SHOW}},
)

L = LeaseStatus
LEASE_TRANSITIONS: TransitionTable[LeaseStatus] = TransitionTable(
    "Lease",
    LeaseStatus,
    {
        L.PENDING: {L.ACTIVE, L.TERMINATED},
        L.ACTIVE: {L.RENEWED, L.MONTH_TO_MONTH, L.NOTICE_GIVEN, L.EXPIRED, L.TERMINATED},
        L.MONTH_TO_MONTH: {L.NOTICE_GIVEN, L.RENEWED, L.TERMINATED},
        L.NOTICE_GIVEN: {L.RENEWED, L.EXPIRED, L.TERMINATED},
        L.EXPIRED: {L.MONTH_TO_MONTH, L.TERMINATED},
    },
)

DEPOSIT_TRANSITIONS: TransitionTable[DepositStatus] = TransitionTable(
    "SecurityDeposit",
    DepositStatus,
    {
        DepositStatus.HELD: {DepositStatus.PENDING_RETURN, DepositStatus.FORFEITED},
        DepositStatus.PENDING_RETURN: {DepositStatus.REFUNDED, DepositStatus.PARTIALLY_REFUNDED},
    },
)

# linear lifecycle, no back edges
POOL_TRANSITIONS: TransitionTable[PoolStatus] = TransitionTable(
    "SecurityDepositInvestmentPool",
    PoolStatus,
    {
        PoolStatus.OPEN: {PoolStatus.CALCULATED},
        PoolStatus.CALCULATED: {PoolStatus.DISTRIBUTED},
        PoolStatus.DISTRIBUTED: {PoolStatus.CLOSED},
    },
)

DIVIDEND_TRANSITIONS: TransitionTable[DividendStatus] = TransitionTable(
    "SecurityDepositDividend",
    DividendStatus,
    {
        DividendStatus.PENDING: {DividendStatus.CHOICE_MADE, DividendStatus.APPLIED, DividendStatus.PAID},
        DividendStatus.CHOICE_MADE: {DividendStatus.APPLIED, DividendStatus.PAID},
    },
)

ALL_TABLES: tuple[TransitionTable, ...] = (
    APPLICATION_TRANSITIONS,
    LEASE_OFFER_TRANSITIONS,
    TOUR_TRANSITIONS,
    LEASE_TRANSITIONS,
    DEPOSIT_TRANSITIONS,
    POOL_TRANSITIONS,
    DIVIDEND_TRANSITIONS,
)

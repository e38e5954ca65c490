# backoffice/domain/statuses.py
from __future__ import annotations

import enum

# -----------------------------------------------------------------------------
# Closed status sets.
#
# Member value == the string stored in the database column. Columns are mapped
# through models._status_type so only these values can be read or written.
# -----------------------------------------------------------------------------


class PropertyStatus(str, enum.Enum):
    AVAILABLE = "Available"
    APPLICATION_PENDING = "Application Pending"
    LEASE_PENDING = "Lease Pending"
    OCCUPIED = "Occupied"
    UNDER_RENOVATION = "Under Renovation"
    OFF_MARKET = "Off Market"


class ProspectStatus(str, enum.Enum):
    LEAD = "Lead"
    TOUR_SCHEDULED = "Tour Scheduled"
    APPLIED = "Applied"
    SCREENING = "Screening"
    APPROVED = "Approved"
    DENIED = "Denied"
    WITHDRAWN = "Withdrawn"
    LEASE_OFFERED = "Lease Offered"
    LEASE_DECLINED = "Lease Declined"
    CONVERTED_TO_TENANT = "Converted To Tenant"


class TourStatus(str, enum.Enum):
    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    NO_SHOW = "No Show"


class ApplicationStatus(str, enum.Enum):
    SUBMITTED = "Submitted"
    UNDER_REVIEW = "Under Review"
    SCREENING = "Screening"
    APPROVED = "Approved"
    DENIED = "Denied"
    LEASE_OFFERED = "Lease Offered"
    LEASE_ACCEPTED = "Lease Accepted"
    LEASE_DECLINED = "Lease Declined"
    EXPIRED = "Expired"
    WITHDRAWN = "Withdrawn"

    @classmethod
    def active(cls) -> frozenset["ApplicationStatus"]:
        """Statuses that still hold a claim on the property."""
        return frozenset(
            {
                cls.SUBMITTED,
                cls.UNDER_REVIEW,
                cls.SCREENING,
                cls.APPROVED,
                cls.LEASE_OFFERED,
            }
        )


class ScreeningResult(str, enum.Enum):
    PENDING = "Pending"
    PASSED = "Passed"
    FAILED = "Failed"
    CONDITIONAL_PASS = "Conditional Pass"


class LeaseOfferStatus(str, enum.Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    DECLINED = "Declined"
    EXPIRED = "Expired"
    WITHDRAWN = "Withdrawn"


class LeaseStatus(str, enum.Enum):
    PENDING = "Pending"
    ACTIVE = "Active"
    RENEWED = "Renewed"
    MONTH_TO_MONTH = "Month-to-Month"
    NOTICE_GIVEN = "Notice Given"
    EXPIRED = "Expired"
    TERMINATED = "Terminated"

    @classmethod
    def occupying(cls) -> frozenset["LeaseStatus"]:
        return frozenset({cls.ACTIVE, cls.MONTH_TO_MONTH, cls.NOTICE_GIVEN})


class InvoiceStatus(str, enum.Enum):
    PENDING = "Pending"
    PAID = "Paid"
    OVERDUE = "Overdue"
    CANCELLED = "Cancelled"


class DepositStatus(str, enum.Enum):
    HELD = "Held"
    PENDING_RETURN = "Pending Return"
    REFUNDED = "Refunded"
    PARTIALLY_REFUNDED = "Partially Refunded"
    FORFEITED = "Forfeited"


class PoolStatus(str, enum.Enum):
    OPEN = "Open"
    CALCULATED = "Calculated"
    DISTRIBUTED = "Distributed"
    CLOSED = "Closed"


class DividendStatus(str, enum.Enum):
    PENDING = "Pending"
    CHOICE_MADE = "Choice Made"
    APPLIED = "Applied"
    PAID = "Paid"


class DividendPaymentMethod(str, enum.Enum):
    PENDING = "Pending"
    LEASE_CREDIT = "Lease Credit"
    CHECK = "Check"


def status_value(v) -> str | None:
    """Storage string for an enum member (or a raw string)."""
    if v is None:
        return None
    if isinstance(v, enum.Enum):
        return str(v.value)
    return str(v)

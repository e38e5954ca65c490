# backoffice/models.py
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum as SAEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base
from .domain.statuses import (
    ApplicationStatus,
    DepositStatus,
    DividendPaymentMethod,
    DividendStatus,
    InvoiceStatus,
    LeaseOfferStatus,
    LeaseStatus,
    PoolStatus,
    PropertyStatus,
    ProspectStatus,
    ScreeningResult,
    TourStatus,
)


def _utcnow() -> datetime:
    # naive UTC, matching the DateTime columns
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _status_type(enum_cls) -> SAEnum:
    return SAEnum(
        enum_cls,
        native_enum=False,
        create_constraint=False,
        length=40,
        values_callable=lambda e: [m.value for m in e],
        validate_strings=True,
    )


class RecordMixin:
    """Columns every tenant-owned record carries. org_id is the isolation boundary."""

    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)

    created_by: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    modified_by: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    modified_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, onupdate=_utcnow)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


# -----------------------------
# Multitenant RBAC tables
# -----------------------------
class Organization(Base):
    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    slug: Mapped[str] = mapped_column(String(80), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)


class AppUser(Base):
    __tablename__ = "app_users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)


class OrgMembership(Base):
    __tablename__ = "org_memberships"
    __table_args__ = (UniqueConstraint("org_id", "user_id", name="uq_org_memberships_org_user"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), index=True, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("app_users.id"), index=True, nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="owner")  # owner|operator|analyst
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)


class OrganizationSettings(Base):
    __tablename__ = "organization_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), nullable=False, unique=True)

    application_expiration_days: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    lease_offer_expiration_days: Mapped[int] = mapped_column(Integer, nullable=False, default=30)

    # deposit investment pool
    security_deposit_investment_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    organization_share_percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0.20)
    allow_tenant_dividend_choice: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    default_dividend_payment_method: Mapped[DividendPaymentMethod] = mapped_column(
        _status_type(DividendPaymentMethod), nullable=False, default=DividendPaymentMethod.LEASE_CREDIT
    )

    # late fees (sweeps)
    late_fee_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    late_fee_auto_apply: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    late_fee_grace_period_days: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    late_fee_percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0.05)
    max_late_fee_amount: Mapped[float] = mapped_column(Float, nullable=False, default=50.0)

    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)


# -----------------------------
# Audit
# -----------------------------
class WorkflowAuditLog(RecordMixin, Base):
    __tablename__ = "workflow_audit_logs"
    __table_args__ = (Index("ix_workflow_audit_logs_org_entity", "org_id", "entity_type", "entity_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    entity_type: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_id: Mapped[int] = mapped_column(Integer, nullable=False)
    from_status: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    to_status: Mapped[str] = mapped_column(String(40), nullable=False)
    action: Mapped[str] = mapped_column(String(80), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    performed_by: Mapped[str] = mapped_column(String(80), nullable=False)
    performed_on: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)

    metadata_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


# -----------------------------
# Properties / prospects
# -----------------------------
class Property(RecordMixin, Base):
    __tablename__ = "properties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(120), nullable=False)
    state: Mapped[str] = mapped_column(String(2), nullable=False, default="MI")
    zip: Mapped[str] = mapped_column(String(10), nullable=False)

    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    bathrooms: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    monthly_rent: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    status: Mapped[PropertyStatus] = mapped_column(
        _status_type(PropertyStatus), nullable=False, default=PropertyStatus.AVAILABLE
    )


class ProspectiveTenant(RecordMixin, Base):
    __tablename__ = "prospective_tenants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    source: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)

    interested_property_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("properties.id"), nullable=True, index=True
    )

    status: Mapped[ProspectStatus] = mapped_column(
        _status_type(ProspectStatus), nullable=False, default=ProspectStatus.LEAD
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Tour(RecordMixin, Base):
    __tablename__ = "tours"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    prospect_id: Mapped[int] = mapped_column(Integer, ForeignKey("prospective_tenants.id"), nullable=False, index=True)
    property_id: Mapped[int] = mapped_column(Integer, ForeignKey("properties.id"), nullable=False, index=True)

    scheduled_on: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=30)

    status: Mapped[TourStatus] = mapped_column(_status_type(TourStatus), nullable=False, default=TourStatus.SCHEDULED)
    feedback: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    interest_level: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    conducted_by: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)


# -----------------------------
# Applications / screening / offers
# -----------------------------
class RentalApplication(RecordMixin, Base):
    __tablename__ = "rental_applications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    prospect_id: Mapped[int] = mapped_column(Integer, ForeignKey("prospective_tenants.id"), nullable=False, index=True)
    property_id: Mapped[int] = mapped_column(Integer, ForeignKey("properties.id"), nullable=False, index=True)

    applied_on: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    status: Mapped[ApplicationStatus] = mapped_column(
        _status_type(ApplicationStatus), nullable=False, default=ApplicationStatus.SUBMITTED
    )

    # applicant details
    current_address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    employer_name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    monthly_income: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    application_fee: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    application_fee_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    application_fee_paid_on: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    application_fee_payment_method: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    expires_on: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    decided_on: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    decision_by: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    denial_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class ApplicationScreening(RecordMixin, Base):
    __tablename__ = "application_screenings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    application_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("rental_applications.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    background_check_requested: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    background_check_requested_on: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    background_check_passed: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    background_check_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    credit_check_requested: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    credit_check_requested_on: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    credit_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    credit_check_passed: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    credit_check_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    overall_result: Mapped[ScreeningResult] = mapped_column(
        _status_type(ScreeningResult), nullable=False, default=ScreeningResult.PENDING
    )
    result_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    completed_on: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


class LeaseOffer(RecordMixin, Base):
    __tablename__ = "lease_offers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    application_id: Mapped[int] = mapped_column(Integer, ForeignKey("rental_applications.id"), nullable=False, index=True)
    property_id: Mapped[int] = mapped_column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    prospect_id: Mapped[int] = mapped_column(Integer, ForeignKey("prospective_tenants.id"), nullable=False, index=True)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    monthly_rent: Mapped[float] = mapped_column(Float, nullable=False)
    security_deposit: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    terms: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    offered_on: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    expires_on: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[LeaseOfferStatus] = mapped_column(
        _status_type(LeaseOfferStatus), nullable=False, default=LeaseOfferStatus.PENDING
    )
    responded_on: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    response_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    converted_lease_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("leases.id"), nullable=True)


# -----------------------------
# Tenants / leases / invoices
# -----------------------------
class Tenant(RecordMixin, Base):
    __tablename__ = "tenants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    prospect_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("prospective_tenants.id"), nullable=True)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)


class Lease(RecordMixin, Base):
    __tablename__ = "leases"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    tenant_id: Mapped[int] = mapped_column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    lease_offer_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    monthly_rent: Mapped[float] = mapped_column(Float, nullable=False)
    security_deposit_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    terms: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[LeaseStatus] = mapped_column(_status_type(LeaseStatus), nullable=False, default=LeaseStatus.PENDING)
    signed_on: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    renewal_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    previous_lease_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("leases.id"), nullable=True)

    notice_given_on: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    expected_move_out_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    actual_move_out_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    termination_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Invoice(RecordMixin, Base):
    __tablename__ = "invoices"
    __table_args__ = (UniqueConstraint("org_id", "invoice_number", name="uq_invoices_org_number"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    lease_id: Mapped[int] = mapped_column(Integer, ForeignKey("leases.id"), nullable=False, index=True)
    invoice_number: Mapped[str] = mapped_column(String(40), nullable=False)

    amount: Mapped[float] = mapped_column(Float, nullable=False)
    due_on: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[InvoiceStatus] = mapped_column(
        _status_type(InvoiceStatus), nullable=False, default=InvoiceStatus.PENDING
    )

    late_fee_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    late_fee_applied: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    late_fee_applied_on: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


# -----------------------------
# Security deposits / investment pool
# -----------------------------
class SecurityDeposit(RecordMixin, Base):
    __tablename__ = "security_deposits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    lease_id: Mapped[int] = mapped_column(Integer, ForeignKey("leases.id"), nullable=False, index=True)
    tenant_id: Mapped[int] = mapped_column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)

    amount: Mapped[float] = mapped_column(Float, nullable=False)
    date_received: Mapped[date] = mapped_column(Date, nullable=False)
    payment_method: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    transaction_reference: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    status: Mapped[DepositStatus] = mapped_column(
        _status_type(DepositStatus), nullable=False, default=DepositStatus.HELD
    )

    in_investment_pool: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pool_entry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    pool_exit_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    deductions_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    deductions_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    refund_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    refund_method: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    refunded_on: Mapped[Optional[date]] = mapped_column(Date, nullable=True)


class SecurityDepositInvestmentPool(RecordMixin, Base):
    __tablename__ = "security_deposit_investment_pools"
    __table_args__ = (UniqueConstraint("org_id", "year", name="uq_investment_pools_org_year"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    starting_balance: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    ending_balance: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_earnings: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    return_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    organization_share_percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0.20)
    organization_share: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    tenant_share_total: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    active_lease_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    dividend_per_lease: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    status: Mapped[PoolStatus] = mapped_column(_status_type(PoolStatus), nullable=False, default=PoolStatus.OPEN)
    dividends_calculated_on: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    dividends_distributed_on: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class SecurityDepositDividend(RecordMixin, Base):
    __tablename__ = "security_deposit_dividends"
    __table_args__ = (UniqueConstraint("deposit_id", "year", name="uq_dividends_deposit_year"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    deposit_id: Mapped[int] = mapped_column(Integer, ForeignKey("security_deposits.id"), nullable=False, index=True)
    pool_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("security_deposit_investment_pools.id"), nullable=False, index=True
    )
    lease_id: Mapped[int] = mapped_column(Integer, ForeignKey("leases.id"), nullable=False)
    tenant_id: Mapped[int] = mapped_column(Integer, ForeignKey("tenants.id"), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    base_dividend_amount: Mapped[float] = mapped_column(Float, nullable=False)
    proration_factor: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    months_in_pool: Mapped[int] = mapped_column(Integer, nullable=False, default=12)
    dividend_amount: Mapped[float] = mapped_column(Float, nullable=False)

    payment_method: Mapped[DividendPaymentMethod] = mapped_column(
        _status_type(DividendPaymentMethod), nullable=False, default=DividendPaymentMethod.PENDING
    )
    status: Mapped[DividendStatus] = mapped_column(
        _status_type(DividendStatus), nullable=False, default=DividendStatus.PENDING
    )
    choice_made_on: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    payment_processed_on: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    payment_reference: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    mailing_address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

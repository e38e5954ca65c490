# backoffice/schemas.py
from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .domain.statuses import (
    ApplicationStatus,
    DepositStatus,
    DividendPaymentMethod,
    DividendStatus,
    LeaseOfferStatus,
    LeaseStatus,
    PoolStatus,
    PropertyStatus,
    ProspectStatus,
    ScreeningResult,
    TourStatus,
)


# -------------------- Envelope --------------------

class WorkflowResultOut(BaseModel):
    success: bool
    message: str = ""
    errors: list[str] = Field(default_factory=list)
    data: Optional[Any] = None


class ReasonIn(BaseModel):
    reason: str = Field(min_length=1)


# -------------------- Properties / prospects / tours --------------------

class PropertyCreate(BaseModel):
    address: str
    city: str
    state: str = "MI"
    zip: str
    bedrooms: int = 1
    bathrooms: float = 1.0
    monthly_rent: float = 0.0


class PropertyOut(PropertyCreate):
    id: int
    status: PropertyStatus
    model_config = ConfigDict(from_attributes=True)


class ProspectCreate(BaseModel):
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    source: Optional[str] = None
    interested_property_id: Optional[int] = None


class ProspectOut(ProspectCreate):
    id: int
    status: ProspectStatus
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class TourCreate(BaseModel):
    property_id: int
    scheduled_on: datetime
    duration_minutes: int = 30


class TourComplete(BaseModel):
    feedback: Optional[str] = None
    interest_level: Optional[str] = None


class TourOut(BaseModel):
    id: int
    prospect_id: int
    property_id: int
    scheduled_on: datetime
    duration_minutes: int
    status: TourStatus
    feedback: Optional[str] = None
    interest_level: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


# -------------------- Applications --------------------

class ApplicationSubmit(BaseModel):
    prospect_id: int
    property_id: int
    application_fee: float = Field(default=0.0, ge=0)
    current_address: Optional[str] = None
    employer_name: Optional[str] = None
    monthly_income: Optional[float] = None


class ApplicationFeeIn(BaseModel):
    payment_method: str
    paid_on: Optional[datetime] = None


class ApplicationOut(BaseModel):
    id: int
    prospect_id: int
    property_id: int
    status: ApplicationStatus
    applied_on: datetime
    expires_on: Optional[datetime] = None
    application_fee: float
    application_fee_paid: bool
    decided_on: Optional[datetime] = None
    decision_by: Optional[str] = None
    denial_reason: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class ScreeningInitiate(BaseModel):
    request_background_check: bool = True
    request_credit_check: bool = True


class ScreeningComplete(BaseModel):
    overall_result: ScreeningResult
    background_check_passed: Optional[bool] = None
    credit_check_passed: Optional[bool] = None
    credit_score: Optional[int] = Field(default=None, ge=300, le=850)
    notes: Optional[str] = None


class ScreeningOut(BaseModel):
    id: int
    application_id: int
    background_check_requested: bool
    background_check_passed: Optional[bool] = None
    credit_check_requested: bool
    credit_check_passed: Optional[bool] = None
    credit_score: Optional[int] = None
    overall_result: ScreeningResult
    completed_on: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# -------------------- Lease offers / leases --------------------

class LeaseOfferCreate(BaseModel):
    start_date: date
    end_date: date
    monthly_rent: float
    security_deposit: float = 0.0
    terms: Optional[str] = None
    notes: Optional[str] = None


class LeaseOfferAccept(BaseModel):
    deposit_payment_method: str
    deposit_payment_date: Optional[date] = None
    deposit_reference: Optional[str] = None
    notes: Optional[str] = None


class LeaseOfferOut(BaseModel):
    id: int
    application_id: int
    property_id: int
    prospect_id: int
    start_date: date
    end_date: date
    monthly_rent: float
    security_deposit: float
    offered_on: datetime
    expires_on: datetime
    status: LeaseOfferStatus
    converted_lease_id: Optional[int] = None
    model_config = ConfigDict(from_attributes=True)


class LeaseOut(BaseModel):
    id: int
    property_id: int
    tenant_id: int
    lease_offer_id: Optional[int] = None
    start_date: date
    end_date: date
    monthly_rent: float
    security_deposit_amount: float
    status: LeaseStatus
    renewal_number: int
    previous_lease_id: Optional[int] = None
    expected_move_out_date: Optional[date] = None
    actual_move_out_date: Optional[date] = None
    model_config = ConfigDict(from_attributes=True)


class LeaseActivate(BaseModel):
    move_in_date: Optional[date] = None


class TerminationNoticeIn(BaseModel):
    notice_date: date
    expected_move_out_date: date
    reason: str


class MonthToMonthIn(BaseModel):
    new_monthly_rent: Optional[float] = None


class LeaseRenewIn(BaseModel):
    new_end_date: date
    new_monthly_rent: float
    new_start_date: Optional[date] = None
    terms: Optional[str] = None


class MoveOutIn(BaseModel):
    move_out_date: Optional[date] = None


class EarlyTerminateIn(BaseModel):
    reason: str
    effective_date: Optional[date] = None


# -------------------- Deposits / pool / dividends --------------------

class SettlementIn(BaseModel):
    deductions_amount: float = Field(default=0.0, ge=0)
    deductions_description: Optional[str] = None


class SettlementOut(BaseModel):
    deposit_id: int
    lease_id: int
    deposit_amount: float
    deductions_amount: float
    refund_amount: float
    status: DepositStatus
    model_config = ConfigDict(from_attributes=True)


class DepositRefundIn(BaseModel):
    refund_method: str
    refunded_on: Optional[date] = None


class DepositOut(BaseModel):
    id: int
    lease_id: int
    tenant_id: int
    amount: float
    status: DepositStatus
    in_investment_pool: bool
    pool_entry_date: Optional[date] = None
    pool_exit_date: Optional[date] = None
    deductions_amount: float
    refund_amount: Optional[float] = None
    refunded_on: Optional[date] = None
    model_config = ConfigDict(from_attributes=True)


class PoolPerformanceIn(BaseModel):
    starting_balance: float = Field(ge=0)
    ending_balance: float = Field(ge=0)
    total_earnings: float


class PoolOut(BaseModel):
    id: int
    year: int
    starting_balance: float
    ending_balance: float
    total_earnings: float
    return_rate: float
    organization_share_percentage: float
    organization_share: float
    tenant_share_total: float
    active_lease_count: int
    dividend_per_lease: float
    status: PoolStatus
    model_config = ConfigDict(from_attributes=True)


class DividendChoiceIn(BaseModel):
    payment_method: DividendPaymentMethod
    mailing_address: Optional[str] = None


class DividendPaymentIn(BaseModel):
    payment_reference: Optional[str] = None


class DividendOut(BaseModel):
    id: int
    deposit_id: int
    lease_id: int
    tenant_id: int
    year: int
    base_dividend_amount: float
    proration_factor: float
    months_in_pool: int
    dividend_amount: float
    payment_method: DividendPaymentMethod
    status: DividendStatus
    model_config = ConfigDict(from_attributes=True)


# -------------------- Audit --------------------

class WorkflowAuditLogOut(BaseModel):
    id: int
    entity_type: str
    entity_id: int
    from_status: Optional[str] = None
    to_status: str
    action: str
    reason: Optional[str] = None
    performed_by: str
    performed_on: datetime
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="metadata_json")
    model_config = ConfigDict(from_attributes=True)

    @field_validator("metadata", mode="before")
    @classmethod
    def _parse_metadata(cls, v):
        if v is None or v == "":
            return {}
        if isinstance(v, str):
            return json.loads(v)
        return v


class ApplicationStateOut(BaseModel):
    application: ApplicationOut
    prospect: Optional[ProspectOut] = None
    property: Optional[PropertyOut] = None
    screening: Optional[ScreeningOut] = None
    lease_offer: Optional[LeaseOfferOut] = None
    valid_next_states: list[str] = Field(default_factory=list)
    audit_history: list[WorkflowAuditLogOut] = Field(default_factory=list)
    model_config = ConfigDict(from_attributes=True)

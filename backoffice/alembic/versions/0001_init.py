"""init schema

Revision ID: 0001_init
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _record_columns():
    return [
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False, index=True),
        sa.Column("created_by", sa.String(length=80), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("modified_by", sa.String(length=80), nullable=True),
        sa.Column("modified_at", sa.DateTime(), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.text("false")),
    ]


def upgrade():
    op.create_table(
        "organizations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("slug", sa.String(length=80), nullable=False, unique=True, index=True),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "app_users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=200), nullable=False, unique=True, index=True),
        sa.Column("display_name", sa.String(length=160), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "org_memberships",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False, index=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=False, index=True),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="owner"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("org_id", "user_id", name="uq_org_memberships_org_user"),
    )

    op.create_table(
        "organization_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False, unique=True),
        sa.Column("application_expiration_days", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("lease_offer_expiration_days", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("security_deposit_investment_enabled", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("organization_share_percentage", sa.Float(), nullable=False, server_default="0.2"),
        sa.Column("allow_tenant_dividend_choice", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("default_dividend_payment_method", sa.String(length=40), nullable=False, server_default="Lease Credit"),
        sa.Column("late_fee_enabled", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("late_fee_auto_apply", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("late_fee_grace_period_days", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("late_fee_percentage", sa.Float(), nullable=False, server_default="0.05"),
        sa.Column("max_late_fee_amount", sa.Float(), nullable=False, server_default="50"),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "workflow_audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        *_record_columns(),
        sa.Column("entity_type", sa.String(length=80), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("from_status", sa.String(length=40), nullable=True),
        sa.Column("to_status", sa.String(length=40), nullable=False),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("performed_by", sa.String(length=80), nullable=False),
        sa.Column("performed_on", sa.DateTime(), nullable=False),
        sa.Column("metadata_json", sa.Text(), nullable=True),
    )
    op.create_index(
        "ix_workflow_audit_logs_org_entity",
        "workflow_audit_logs",
        ["org_id", "entity_type", "entity_id"],
    )

    op.create_table(
        "properties",
        sa.Column("id", sa.Integer(), primary_key=True),
        *_record_columns(),
        sa.Column("address", sa.String(length=255), nullable=False),
        sa.Column("city", sa.String(length=120), nullable=False),
        sa.Column("state", sa.String(length=2), nullable=False),
        sa.Column("zip", sa.String(length=10), nullable=False),
        sa.Column("bedrooms", sa.Integer(), nullable=False),
        sa.Column("bathrooms", sa.Float(), nullable=False),
        sa.Column("monthly_rent", sa.Float(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=40), nullable=False, server_default="Available"),
    )

    op.create_table(
        "prospective_tenants",
        sa.Column("id", sa.Integer(), primary_key=True),
        *_record_columns(),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=200), nullable=False),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("source", sa.String(length=80), nullable=True),
        sa.Column("interested_property_id", sa.Integer(), sa.ForeignKey("properties.id"), nullable=True, index=True),
        sa.Column("status", sa.String(length=40), nullable=False, server_default="Lead"),
    )

    op.create_table(
        "tours",
        sa.Column("id", sa.Integer(), primary_key=True),
        *_record_columns(),
        sa.Column("prospect_id", sa.Integer(), sa.ForeignKey("prospective_tenants.id"), nullable=False, index=True),
        sa.Column("property_id", sa.Integer(), sa.ForeignKey("properties.id"), nullable=False, index=True),
        sa.Column("scheduled_on", sa.DateTime(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("status", sa.String(length=40), nullable=False, server_default="Scheduled"),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("interest_level", sa.String(length=40), nullable=True),
        sa.Column("conducted_by", sa.String(length=80), nullable=True),
    )

    op.create_table(
        "rental_applications",
        sa.Column("id", sa.Integer(), primary_key=True),
        *_record_columns(),
        sa.Column("prospect_id", sa.Integer(), sa.ForeignKey("prospective_tenants.id"), nullable=False, index=True),
        sa.Column("property_id", sa.Integer(), sa.ForeignKey("properties.id"), nullable=False, index=True),
        sa.Column("applied_on", sa.DateTime(), nullable=False),
        sa.Column("status", sa.String(length=40), nullable=False, server_default="Submitted"),
        sa.Column("current_address", sa.String(length=255), nullable=True),
        sa.Column("employer_name", sa.String(length=160), nullable=True),
        sa.Column("monthly_income", sa.Float(), nullable=True),
        sa.Column("application_fee", sa.Float(), nullable=False, server_default="0"),
        sa.Column("application_fee_paid", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("application_fee_paid_on", sa.DateTime(), nullable=True),
        sa.Column("application_fee_payment_method", sa.String(length=40), nullable=True),
        sa.Column("expires_on", sa.DateTime(), nullable=True),
        sa.Column("decided_on", sa.DateTime(), nullable=True),
        sa.Column("decision_by", sa.String(length=80), nullable=True),
        sa.Column("denial_reason", sa.Text(), nullable=True),
    )

    op.create_table(
        "application_screenings",
        sa.Column("id", sa.Integer(), primary_key=True),
        *_record_columns(),
        sa.Column(
            "application_id",
            sa.Integer(),
            sa.ForeignKey("rental_applications.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("background_check_requested", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("background_check_requested_on", sa.DateTime(), nullable=True),
        sa.Column("background_check_passed", sa.Boolean(), nullable=True),
        sa.Column("background_check_notes", sa.Text(), nullable=True),
        sa.Column("credit_check_requested", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("credit_check_requested_on", sa.DateTime(), nullable=True),
        sa.Column("credit_score", sa.Integer(), nullable=True),
        sa.Column("credit_check_passed", sa.Boolean(), nullable=True),
        sa.Column("credit_check_notes", sa.Text(), nullable=True),
        sa.Column("overall_result", sa.String(length=40), nullable=False, server_default="Pending"),
        sa.Column("result_notes", sa.Text(), nullable=True),
        sa.Column("completed_on", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "tenants",
        sa.Column("id", sa.Integer(), primary_key=True),
        *_record_columns(),
        sa.Column("prospect_id", sa.Integer(), sa.ForeignKey("prospective_tenants.id"), nullable=True),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=200), nullable=False),
        sa.Column("phone", sa.String(length=40), nullable=True),
    )

    # leases before lease_offers: offers point at their converted lease
    op.create_table(
        "leases",
        sa.Column("id", sa.Integer(), primary_key=True),
        *_record_columns(),
        sa.Column("property_id", sa.Integer(), sa.ForeignKey("properties.id"), nullable=False, index=True),
        sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("tenants.id"), nullable=False, index=True),
        sa.Column("lease_offer_id", sa.Integer(), nullable=True, index=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("monthly_rent", sa.Float(), nullable=False),
        sa.Column("security_deposit_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("terms", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=40), nullable=False, server_default="Pending"),
        sa.Column("signed_on", sa.DateTime(), nullable=True),
        sa.Column("renewal_number", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("previous_lease_id", sa.Integer(), sa.ForeignKey("leases.id"), nullable=True),
        sa.Column("notice_given_on", sa.Date(), nullable=True),
        sa.Column("expected_move_out_date", sa.Date(), nullable=True),
        sa.Column("actual_move_out_date", sa.Date(), nullable=True),
        sa.Column("termination_reason", sa.Text(), nullable=True),
    )

    op.create_table(
        "lease_offers",
        sa.Column("id", sa.Integer(), primary_key=True),
        *_record_columns(),
        sa.Column("application_id", sa.Integer(), sa.ForeignKey("rental_applications.id"), nullable=False, index=True),
        sa.Column("property_id", sa.Integer(), sa.ForeignKey("properties.id"), nullable=False, index=True),
        sa.Column("prospect_id", sa.Integer(), sa.ForeignKey("prospective_tenants.id"), nullable=False, index=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("monthly_rent", sa.Float(), nullable=False),
        sa.Column("security_deposit", sa.Float(), nullable=False, server_default="0"),
        sa.Column("terms", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("offered_on", sa.DateTime(), nullable=False),
        sa.Column("expires_on", sa.DateTime(), nullable=False),
        sa.Column("status", sa.String(length=40), nullable=False, server_default="Pending"),
        sa.Column("responded_on", sa.DateTime(), nullable=True),
        sa.Column("response_notes", sa.Text(), nullable=True),
        sa.Column("converted_lease_id", sa.Integer(), sa.ForeignKey("leases.id"), nullable=True),
    )

    op.create_table(
        "invoices",
        sa.Column("id", sa.Integer(), primary_key=True),
        *_record_columns(),
        sa.Column("lease_id", sa.Integer(), sa.ForeignKey("leases.id"), nullable=False, index=True),
        sa.Column("invoice_number", sa.String(length=40), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("due_on", sa.Date(), nullable=False),
        sa.Column("status", sa.String(length=40), nullable=False, server_default="Pending"),
        sa.Column("late_fee_amount", sa.Float(), nullable=True),
        sa.Column("late_fee_applied", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("late_fee_applied_on", sa.DateTime(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.UniqueConstraint("org_id", "invoice_number", name="uq_invoices_org_number"),
    )

    op.create_table(
        "security_deposits",
        sa.Column("id", sa.Integer(), primary_key=True),
        *_record_columns(),
        sa.Column("lease_id", sa.Integer(), sa.ForeignKey("leases.id"), nullable=False, index=True),
        sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("tenants.id"), nullable=False, index=True),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("date_received", sa.Date(), nullable=False),
        sa.Column("payment_method", sa.String(length=40), nullable=True),
        sa.Column("transaction_reference", sa.String(length=120), nullable=True),
        sa.Column("status", sa.String(length=40), nullable=False, server_default="Held"),
        sa.Column("in_investment_pool", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("pool_entry_date", sa.Date(), nullable=True),
        sa.Column("pool_exit_date", sa.Date(), nullable=True),
        sa.Column("deductions_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("deductions_description", sa.Text(), nullable=True),
        sa.Column("refund_amount", sa.Float(), nullable=True),
        sa.Column("refund_method", sa.String(length=40), nullable=True),
        sa.Column("refunded_on", sa.Date(), nullable=True),
    )

    op.create_table(
        "security_deposit_investment_pools",
        sa.Column("id", sa.Integer(), primary_key=True),
        *_record_columns(),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("starting_balance", sa.Float(), nullable=False, server_default="0"),
        sa.Column("ending_balance", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_earnings", sa.Float(), nullable=False, server_default="0"),
        sa.Column("return_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("organization_share_percentage", sa.Float(), nullable=False, server_default="0.2"),
        sa.Column("organization_share", sa.Float(), nullable=False, server_default="0"),
        sa.Column("tenant_share_total", sa.Float(), nullable=False, server_default="0"),
        sa.Column("active_lease_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("dividend_per_lease", sa.Float(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=40), nullable=False, server_default="Open"),
        sa.Column("dividends_calculated_on", sa.DateTime(), nullable=True),
        sa.Column("dividends_distributed_on", sa.DateTime(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.UniqueConstraint("org_id", "year", name="uq_investment_pools_org_year"),
    )

    op.create_table(
        "security_deposit_dividends",
        sa.Column("id", sa.Integer(), primary_key=True),
        *_record_columns(),
        sa.Column("deposit_id", sa.Integer(), sa.ForeignKey("security_deposits.id"), nullable=False, index=True),
        sa.Column(
            "pool_id",
            sa.Integer(),
            sa.ForeignKey("security_deposit_investment_pools.id"),
            nullable=False,
            index=True,
        ),
        sa.Column("lease_id", sa.Integer(), sa.ForeignKey("leases.id"), nullable=False),
        sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("base_dividend_amount", sa.Float(), nullable=False),
        sa.Column("proration_factor", sa.Float(), nullable=False, server_default="1"),
        sa.Column("months_in_pool", sa.Integer(), nullable=False, server_default="12"),
        sa.Column("dividend_amount", sa.Float(), nullable=False),
        sa.Column("payment_method", sa.String(length=40), nullable=False, server_default="Pending"),
        sa.Column("status", sa.String(length=40), nullable=False, server_default="Pending"),
        sa.Column("choice_made_on", sa.DateTime(), nullable=True),
        sa.Column("payment_processed_on", sa.DateTime(), nullable=True),
        sa.Column("payment_reference", sa.String(length=120), nullable=True),
        sa.Column("mailing_address", sa.String(length=255), nullable=True),
        sa.UniqueConstraint("deposit_id", "year", name="uq_dividends_deposit_year"),
    )


def downgrade():
    for name in (
        "security_deposit_dividends",
        "security_deposit_investment_pools",
        "security_deposits",
        "invoices",
        "lease_offers",
        "leases",
        "tenants",
        "application_screenings",
        "rental_applications",
        "tours",
        "prospective_tenants",
        "properties",
    ):
        op.drop_table(name)
    op.drop_index("ix_workflow_audit_logs_org_entity", table_name="workflow_audit_logs")
    for name in ("workflow_audit_logs", "organization_settings", "org_memberships", "app_users", "organizations"):
        op.drop_table(name)

"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-01-12 10:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, applications, audit, documents, inspections, notifications, settings"""
    op.create_table(
        "users",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False),
        sa.Column("full_name", sa.String(), nullable=False),
        sa.Column("mobile", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("district", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_role"), "users", ["role"], unique=False)
    op.create_index(op.f("ix_users_district"), "users", ["district"], unique=False)

    op.create_table(
        "homestay_applications",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("application_number", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("application_kind", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=True),
        sa.Column("parent_application_id", sa.String(), nullable=True),
        sa.Column("parent_application_number", sa.String(), nullable=True),
        sa.Column("parent_certificate_number", sa.String(), nullable=True),
        sa.Column("service_context", postgresql.JSON(astext_type=sa.Text()), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("current_stage", sa.String(), nullable=True),
        sa.Column("property_name", sa.String(), nullable=True),
        sa.Column("owner_name", sa.String(), nullable=True),
        sa.Column("owner_gender", sa.String(), nullable=True),
        sa.Column("owner_mobile", sa.String(), nullable=True),
        sa.Column("owner_email", sa.String(), nullable=True),
        sa.Column("owner_aadhaar", sa.String(), nullable=True),
        sa.Column("guardian_name", sa.String(), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("district", sa.String(), nullable=True),
        sa.Column("tehsil", sa.String(), nullable=True),
        sa.Column("pincode", sa.String(), nullable=True),
        sa.Column("location_type", sa.String(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("gstin", sa.String(), nullable=True),
        sa.Column("is_special_subdivision", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("certificate_validity_years", sa.Integer(), server_default="1", nullable=False),
        sa.Column("single_bed_rooms", sa.Integer(), server_default="0", nullable=False),
        sa.Column("single_bed_beds", sa.Integer(), nullable=True),
        sa.Column("single_bed_room_rate", sa.Float(), nullable=True),
        sa.Column("double_bed_rooms", sa.Integer(), server_default="0", nullable=False),
        sa.Column("double_bed_beds", sa.Integer(), nullable=True),
        sa.Column("double_bed_room_rate", sa.Float(), nullable=True),
        sa.Column("family_suites", sa.Integer(), server_default="0", nullable=False),
        sa.Column("family_suite_beds", sa.Integer(), nullable=True),
        sa.Column("family_suite_rate", sa.Float(), nullable=True),
        sa.Column("attached_washrooms", sa.Integer(), server_default="0", nullable=False),
        sa.Column("total_rooms", sa.Integer(), server_default="0", nullable=False),
        sa.Column("base_fee", sa.Float(), nullable=True),
        sa.Column("total_before_discounts", sa.Float(), nullable=True),
        sa.Column("validity_discount", sa.Float(), nullable=True),
        sa.Column("female_owner_discount", sa.Float(), nullable=True),
        sa.Column("subdivision_discount", sa.Float(), nullable=True),
        sa.Column("total_discount", sa.Float(), nullable=True),
        sa.Column("total_fee", sa.Float(), nullable=True),
        sa.Column("payment_status", sa.String(), server_default="pending", nullable=False),
        sa.Column("payment_reference", sa.String(), nullable=True),
        sa.Column("payment_date", sa.DateTime(), nullable=True),
        sa.Column("da_id", sa.String(), nullable=True),
        sa.Column("da_review_date", sa.DateTime(), nullable=True),
        sa.Column("da_remarks", sa.Text(), nullable=True),
        sa.Column("da_forwarded_date", sa.DateTime(), nullable=True),
        sa.Column("dtdo_id", sa.String(), nullable=True),
        sa.Column("dtdo_review_date", sa.DateTime(), nullable=True),
        sa.Column("dtdo_remarks", sa.Text(), nullable=True),
        sa.Column("district_notes", sa.Text(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("clarification_requested", sa.Text(), nullable=True),
        sa.Column("revert_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("correction_submission_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("site_inspection_scheduled_date", sa.DateTime(), nullable=True),
        sa.Column("site_inspection_officer_id", sa.String(), nullable=True),
        sa.Column("site_inspection_outcome", sa.String(), nullable=True),
        sa.Column("site_inspection_notes", sa.Text(), nullable=True),
        sa.Column("site_inspection_completed_date", sa.DateTime(), nullable=True),
        sa.Column("inspection_report_id", sa.String(), nullable=True),
        sa.Column("certificate_number", sa.String(), nullable=True),
        sa.Column("certificate_issued_date", sa.DateTime(), nullable=True),
        sa.Column("certificate_expiry_date", sa.DateTime(), nullable=True),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.Column("submitted_at", sa.DateTime(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["parent_application_id"], ["homestay_applications.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "total_rooms = single_bed_rooms + double_bed_rooms + family_suites",
            name="ck_applications_total_rooms",
        ),
    )
    op.create_index(
        op.f("ix_homestay_applications_application_number"),
        "homestay_applications",
        ["application_number"],
        unique=True,
    )
    op.create_index(op.f("ix_homestay_applications_user_id"), "homestay_applications", ["user_id"], unique=False)
    op.create_index(
        op.f("ix_homestay_applications_parent_application_id"),
        "homestay_applications",
        ["parent_application_id"],
        unique=False,
    )
    op.create_index(op.f("ix_homestay_applications_status"), "homestay_applications", ["status"], unique=False)
    op.create_index(op.f("ix_homestay_applications_district"), "homestay_applications", ["district"], unique=False)
    op.create_index(
        op.f("ix_homestay_applications_certificate_number"),
        "homestay_applications",
        ["certificate_number"],
        unique=True,
    )
    op.create_index(
        op.f("ix_homestay_applications_created_at"), "homestay_applications", ["created_at"], unique=False
    )
    op.create_index("ix_applications_owner_created", "homestay_applications", ["user_id", "created_at"])
    op.create_index("ix_applications_district_status", "homestay_applications", ["district", "status"])

    op.create_table(
        "application_actions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("application_id", sa.String(), nullable=False),
        sa.Column("actor_id", sa.String(), nullable=True),
        sa.Column("actor_role", sa.String(), nullable=True),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("previous_status", sa.String(), nullable=True),
        sa.Column("new_status", sa.String(), nullable=True),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("details", postgresql.JSON(astext_type=sa.Text()), nullable=True),
        sa.Column("correlation_id", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["application_id"], ["homestay_applications.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_application_actions_application_id"), "application_actions", ["application_id"], unique=False
    )
    op.create_index(op.f("ix_application_actions_action"), "application_actions", ["action"], unique=False)
    op.create_index(op.f("ix_application_actions_created_at"), "application_actions", ["created_at"], unique=False)

    # Audit trail is append-only at the database level too
    op.execute(
        """
        CREATE OR REPLACE FUNCTION prevent_application_action_changes()
        RETURNS TRIGGER AS $$
        BEGIN
            RAISE EXCEPTION 'application_actions is append-only';
        END;
        $$ LANGUAGE plpgsql;
        """
    )
    op.execute(
        """
        CREATE TRIGGER application_actions_append_only
        BEFORE UPDATE OR DELETE ON application_actions
        FOR EACH ROW EXECUTE FUNCTION prevent_application_action_changes();
        """
    )

    op.create_table(
        "application_documents",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("application_id", sa.String(), nullable=False),
        sa.Column("document_type", sa.String(), nullable=False),
        sa.Column("file_name", sa.String(), nullable=False),
        sa.Column("file_path", sa.String(), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("mime_type", sa.String(), nullable=False),
        sa.Column("verification_status", sa.String(), server_default="pending", nullable=False),
        sa.Column("verification_notes", sa.Text(), nullable=True),
        sa.Column("verified_by", sa.String(), nullable=True),
        sa.Column("verification_date", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["application_id"], ["homestay_applications.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_application_documents_application_id"), "application_documents", ["application_id"], unique=False
    )

    op.create_table(
        "inspection_orders",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("application_id", sa.String(), nullable=False),
        sa.Column("scheduled_by", sa.String(), nullable=False),
        sa.Column("scheduled_date", sa.DateTime(), nullable=False),
        sa.Column("assigned_to", sa.String(), nullable=False),
        sa.Column("assigned_date", sa.DateTime(), nullable=False),
        sa.Column("inspection_date", sa.DateTime(), nullable=False),
        sa.Column("inspection_address", sa.Text(), nullable=True),
        sa.Column("special_instructions", sa.Text(), nullable=True),
        sa.Column("status", sa.String(), server_default="scheduled", nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["application_id"], ["homestay_applications.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_inspection_orders_application_id"), "inspection_orders", ["application_id"], unique=False)
    op.create_index(op.f("ix_inspection_orders_assigned_to"), "inspection_orders", ["assigned_to"], unique=False)
    op.create_index(op.f("ix_inspection_orders_status"), "inspection_orders", ["status"], unique=False)
    op.create_index(op.f("ix_inspection_orders_created_at"), "inspection_orders", ["created_at"], unique=False)

    op.create_table(
        "inspection_reports",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("inspection_order_id", sa.String(), nullable=False),
        sa.Column("application_id", sa.String(), nullable=False),
        sa.Column("submitted_by", sa.String(), nullable=False),
        sa.Column("submitted_date", sa.DateTime(), nullable=False),
        sa.Column("actual_inspection_date", sa.Date(), nullable=False),
        sa.Column("room_count_verified", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("actual_room_count", sa.Integer(), nullable=True),
        sa.Column("category_meets_standards", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("recommended_category", sa.String(), nullable=True),
        sa.Column("mandatory_checklist", postgresql.JSON(astext_type=sa.Text()), nullable=True),
        sa.Column("mandatory_remarks", sa.Text(), nullable=True),
        sa.Column("desirable_checklist", postgresql.JSON(astext_type=sa.Text()), nullable=True),
        sa.Column("desirable_remarks", sa.Text(), nullable=True),
        sa.Column("fire_safety_compliant", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("structural_safety", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("overall_satisfactory", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("recommendation", sa.String(), nullable=False),
        sa.Column("detailed_findings", sa.Text(), nullable=True),
        sa.Column("early_inspection_override", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("early_inspection_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["inspection_order_id"], ["inspection_orders.id"]),
        sa.ForeignKeyConstraint(["application_id"], ["homestay_applications.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("inspection_order_id", name="uq_inspection_reports_order"),
    )
    op.create_index(
        op.f("ix_inspection_reports_application_id"), "inspection_reports", ["application_id"], unique=False
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("application_id", sa.String(), nullable=True),
        sa.Column("event", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("metadata", postgresql.JSON(astext_type=sa.Text()), nullable=True),
        sa.Column("is_read", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_notifications_user_id"), "notifications", ["user_id"], unique=False)
    op.create_index(op.f("ix_notifications_application_id"), "notifications", ["application_id"], unique=False)
    op.create_index(op.f("ix_notifications_created_at"), "notifications", ["created_at"], unique=False)

    op.create_table(
        "system_settings",
        sa.Column("setting_key", sa.String(), nullable=False),
        sa.Column("setting_value", postgresql.JSON(astext_type=sa.Text()), nullable=False),
        sa.Column("updated_by", sa.String(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("setting_key"),
    )


def downgrade() -> None:
    """Drop all workflow tables"""
    op.drop_table("system_settings")

    op.drop_index(op.f("ix_notifications_created_at"), table_name="notifications")
    op.drop_index(op.f("ix_notifications_application_id"), table_name="notifications")
    op.drop_index(op.f("ix_notifications_user_id"), table_name="notifications")
    op.drop_table("notifications")

    op.drop_index(op.f("ix_inspection_reports_application_id"), table_name="inspection_reports")
    op.drop_table("inspection_reports")

    op.drop_index(op.f("ix_inspection_orders_created_at"), table_name="inspection_orders")
    op.drop_index(op.f("ix_inspection_orders_status"), table_name="inspection_orders")
    op.drop_index(op.f("ix_inspection_orders_assigned_to"), table_name="inspection_orders")
    op.drop_index(op.f("ix_inspection_orders_application_id"), table_name="inspection_orders")
    op.drop_table("inspection_orders")

    op.drop_index(op.f("ix_application_documents_application_id"), table_name="application_documents")
    op.drop_table("application_documents")

    op.execute("DROP TRIGGER IF EXISTS application_actions_append_only ON application_actions")
    op.execute("DROP FUNCTION IF EXISTS prevent_application_action_changes()")
    op.drop_index(op.f("ix_application_actions_created_at"), table_name="application_actions")
    op.drop_index(op.f("ix_application_actions_action"), table_name="application_actions")
    op.drop_index(op.f("ix_application_actions_application_id"), table_name="application_actions")
    op.drop_table("application_actions")

    op.drop_index("ix_applications_district_status", table_name="homestay_applications")
    op.drop_index("ix_applications_owner_created", table_name="homestay_applications")
    op.drop_index(op.f("ix_homestay_applications_created_at"), table_name="homestay_applications")
    op.drop_index(op.f("ix_homestay_applications_certificate_number"), table_name="homestay_applications")
    op.drop_index(op.f("ix_homestay_applications_district"), table_name="homestay_applications")
    op.drop_index(op.f("ix_homestay_applications_status"), table_name="homestay_applications")
    op.drop_index(op.f("ix_homestay_applications_parent_application_id"), table_name="homestay_applications")
    op.drop_index(op.f("ix_homestay_applications_user_id"), table_name="homestay_applications")
    op.drop_index(op.f("ix_homestay_applications_application_number"), table_name="homestay_applications")
    op.drop_table("homestay_applications")

    op.drop_index(op.f("ix_users_district"), table_name="users")
    op.drop_index(op.f("ix_users_role"), table_name="users")
    op.drop_table("users")

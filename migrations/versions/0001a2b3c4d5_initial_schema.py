"""initial schema

Revision ID: 0001a2b3c4d5
Revises:
Create Date: 2026-10-19 09:12:40.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001a2b3c4d5'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def _flags() -> list[sa.Column]:
    return [
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
    ]


def _term_columns() -> list[sa.Column]:
    return [
        sa.Column("billing_model", sa.String(16), nullable=False, server_default="MONTHLY"),
        sa.Column("start_date", sa.DateTime(), nullable=False),
        sa.Column("end_date", sa.DateTime(), nullable=False),
        sa.Column("is_expired", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notification_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("first_reminder_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("second_reminder_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
    ]


def upgrade() -> None:
    """Create users, plans, gyms, locations, members, subscriptions, payments, equipment, announcements and todos."""
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(320), nullable=True, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(32), nullable=False, server_default="GYM_OWNER"),
        sa.Column("first_name", sa.String(128), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(128), nullable=False, server_default=""),
        sa.Column("phone_number", sa.String(64), nullable=True),
        sa.Column("address", sa.String(512), nullable=True),
        sa.Column("city", sa.String(128), nullable=True),
        sa.Column("state", sa.String(128), nullable=True),
        sa.Column("zip_code", sa.String(32), nullable=True),
        sa.Column("country", sa.String(128), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("cnic", sa.String(32), nullable=True),
        sa.Column("profile_picture", sa.String(1024), nullable=True),
        *_flags(),
        *_timestamps(),
    )
    op.create_index("idx_users_role", "users", ["role"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("request_id", sa.String(64), nullable=True),
        sa.Column("client_ip", sa.String(64), nullable=True),
        sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("actor_user_email", sa.String(320), nullable=True),
        sa.Column("action", sa.String(128), nullable=False),
        sa.Column("entity_type", sa.String(128), nullable=True),
        sa.Column("entity_id", sa.String(128), nullable=True),
        sa.Column("reason", sa.String(512), nullable=True),
        sa.Column("metadata_json", sa.Text(), nullable=True),
    )
    op.create_index("idx_audit_entity", "audit_events", ["entity_type", "entity_id"])

    op.create_table(
        "plans",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("monthly_price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("yearly_price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_gyms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_locations", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_members", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_equipment", sa.Integer(), nullable=False, server_default="0"),
        *_flags(),
        *_timestamps(),
    )
    op.create_index("idx_plans_name", "plans", ["name"])

    op.create_table(
        "gyms",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.String(512), nullable=True),
        sa.Column("city", sa.String(128), nullable=True),
        sa.Column("state", sa.String(128), nullable=True),
        sa.Column("zip_code", sa.String(32), nullable=True),
        sa.Column("country", sa.String(128), nullable=True),
        sa.Column("phone_number", sa.String(64), nullable=True),
        *_flags(),
        *_timestamps(),
    )
    op.create_index("idx_gyms_owner", "gyms", ["owner_id"])

    op.create_table(
        "locations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("gym_id", sa.Integer(), sa.ForeignKey("gyms.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.String(512), nullable=True),
        sa.Column("city", sa.String(128), nullable=True),
        sa.Column("state", sa.String(128), nullable=True),
        sa.Column("zip_code", sa.String(32), nullable=True),
        sa.Column("country", sa.String(128), nullable=True),
        sa.Column("phone_number", sa.String(64), nullable=True),
        *_flags(),
        *_timestamps(),
    )
    op.create_index("idx_locations_gym", "locations", ["gym_id"])

    op.create_table(
        "members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("gym_id", sa.Integer(), sa.ForeignKey("gyms.id", ondelete="CASCADE"), nullable=False),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("joined_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("idx_members_gym", "members", ["gym_id"])
    op.create_index("idx_members_location", "members", ["location_id"])

    op.create_table(
        "owner_subscriptions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("plan_id", sa.Integer(), sa.ForeignKey("plans.id", ondelete="RESTRICT"), nullable=False),
        *_term_columns(),
        *_flags(),
        *_timestamps(),
    )
    op.create_index("idx_owner_subs_owner", "owner_subscriptions", ["owner_id"])
    op.create_index("idx_owner_subs_end_date", "owner_subscriptions", ["end_date"])

    op.create_table(
        "member_subscriptions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False, server_default="0"),
        *_term_columns(),
        *_flags(),
        *_timestamps(),
    )
    op.create_index("idx_member_subs_member", "member_subscriptions", ["member_id"])
    op.create_index("idx_member_subs_end_date", "member_subscriptions", ["end_date"])

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "owner_subscription_id",
            sa.Integer(),
            sa.ForeignKey("owner_subscriptions.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column(
            "member_subscription_id",
            sa.Integer(),
            sa.ForeignKey("member_subscriptions.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("subscription_type", sa.String(16), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("payment_method", sa.String(32), nullable=False),
        sa.Column("transaction_id", sa.String(128), nullable=True),
        sa.Column("payment_date", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("idx_payments_type_date", "payments", ["subscription_type", "payment_date"])
    op.create_index("idx_payments_owner_sub", "payments", ["owner_subscription_id"])
    op.create_index("idx_payments_member_sub", "payments", ["member_subscription_id"])

    op.create_table(
        "equipment",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("gym_id", sa.Integer(), sa.ForeignKey("gyms.id", ondelete="CASCADE"), nullable=False),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(128), nullable=False),
        sa.Column("quantity", sa.String(32), nullable=False, server_default="1"),
        sa.Column("category", sa.String(128), nullable=True),
        sa.Column("brand", sa.String(255), nullable=True),
        sa.Column("model_number", sa.String(128), nullable=True),
        sa.Column("serial_number", sa.String(128), nullable=True),
        sa.Column("min_stock_level", sa.String(32), nullable=True),
        sa.Column("condition", sa.String(64), nullable=True),
        sa.Column("status", sa.String(64), nullable=True),
        sa.Column("weight", sa.String(64), nullable=True),
        sa.Column("usage_frequency", sa.String(64), nullable=True),
        sa.Column("equipment_location", sa.String(255), nullable=True),
        sa.Column("purchase_date", sa.Date(), nullable=True),
        sa.Column("purchase_cost", sa.String(64), nullable=True),
        sa.Column("supplier_name", sa.String(255), nullable=True),
        sa.Column("last_maintenance_date", sa.Date(), nullable=True),
        sa.Column("next_maintenance_due", sa.Date(), nullable=True),
        sa.Column("maintenance_notes", sa.Text(), nullable=True),
        sa.Column("image_url", sa.String(1024), nullable=True),
        sa.Column("invoice_url", sa.String(1024), nullable=True),
        *_flags(),
        *_timestamps(),
        sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("updated_by_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
    )
    op.create_index("idx_equipment_location", "equipment", ["location_id"])
    op.create_index("idx_equipment_gym", "equipment", ["gym_id"])
    op.create_index("idx_equipment_status", "equipment", ["status"])
    op.create_index("idx_equipment_next_maintenance", "equipment", ["next_maintenance_due"])

    op.create_table(
        "announcements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("audience", sa.String(32), nullable=False, server_default="ALL"),
        *_flags(),
        *_timestamps(),
    )

    op.create_table(
        "todos",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_flags(),
        *_timestamps(),
    )
    op.create_index("idx_todos_user", "todos", ["user_id"])


def downgrade() -> None:
    for table in (
        "todos",
        "announcements",
        "equipment",
        "payments",
        "member_subscriptions",
        "owner_subscriptions",
        "members",
        "locations",
        "gyms",
        "plans",
        "audit_events",
        "users",
    ):
        op.drop_table(table)

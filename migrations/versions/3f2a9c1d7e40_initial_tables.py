"""initial_tables

Revision ID: 3f2a9c1d7e40
Revises:
Create Date: 2026-09-14 10:12:03.418220

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f2a9c1d7e40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # ROOMMATE APPLICATIONS
    op.create_table(
        "roommate_applications",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("post_id", sa.String(), nullable=False),
        sa.Column("applicant_id", sa.String(), nullable=False),
        sa.Column("tenant_id", sa.String(), nullable=False),
        sa.Column("landlord_id", sa.String(), nullable=True),
        sa.Column("is_platform_room", sa.Boolean(), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("profile", sa.JSON(), nullable=False),
        sa.Column("terms", sa.JSON(), nullable=False),
        sa.Column("tenant_response", sa.JSON(), nullable=True),
        sa.Column("landlord_response", sa.JSON(), nullable=True),
        sa.Column(
            "confirmed_by_tenant", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        sa.Column(
            "confirmed_by_landlord", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rental_id", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_roommate_applications_applicant", "roommate_applications", ["applicant_id"]
    )
    op.create_index("idx_roommate_applications_post", "roommate_applications", ["post_id"])
    op.create_index("idx_roommate_applications_tenant", "roommate_applications", ["tenant_id"])
    op.create_index(
        "idx_roommate_applications_landlord_status",
        "roommate_applications",
        ["landlord_id", "status"],
    )
    op.create_index(
        "idx_roommate_applications_expiry", "roommate_applications", ["status", "expires_at"]
    )

    # APPLICATION RESPONSES
    op.create_table(
        "application_responses",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("application_id", sa.String(), nullable=False),
        sa.Column("actor_id", sa.String(), nullable=False),
        sa.Column("role", sa.String(16), nullable=False),
        sa.Column("action", sa.String(16), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("from_status", sa.String(32), nullable=False),
        sa.Column("to_status", sa.String(32), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["application_id"], ["roommate_applications.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "application_id", "version", name="uq_response_application_version"
        ),
    )
    op.create_index(
        "idx_application_responses_application",
        "application_responses",
        ["application_id", "version"],
    )

    # EVENTS
    op.create_table(
        "events",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("event_type", sa.String(128), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_events_type_created", "events", ["event_type", sa.text("created_at DESC")]
    )

    # DELIVERIES
    op.create_table(
        "deliveries",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("event_id", sa.String(), nullable=False),
        sa.Column("consumer_group", sa.String(128), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivery_error", sa.Text(), nullable=True),
        sa.Column("retry_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("next_attempt_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["event_id"], ["events.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("event_id", "consumer_group", name="uq_delivery_event_consumer"),
    )
    op.create_index(
        "idx_deliveries_claim",
        "deliveries",
        ["consumer_group", "status", "event_id"],
        postgresql_where=sa.text("status IN ('pending', 'claimed')"),
    )
    op.create_index("idx_deliveries_event", "deliveries", ["event_id"])
    op.create_index(
        "idx_deliveries_stale",
        "deliveries",
        ["claimed_at"],
        postgresql_where=sa.text("status = 'claimed'"),
    )
    op.create_index(
        "idx_deliveries_failed",
        "deliveries",
        ["consumer_group", "retry_count"],
        postgresql_where=sa.text("status = 'failed'"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("deliveries")
    op.drop_table("events")
    op.drop_table("application_responses")
    op.drop_table("roommate_applications")

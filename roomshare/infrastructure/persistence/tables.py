"""SQLAlchemy table definitions - dialect-agnostic (works with SQLite and PostgreSQL)."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.types import JSON

metadata = MetaData()

# ============================================================================
# ROOMMATE APPLICATIONS TABLE
# ============================================================================
roommate_applications_table = Table(
    "roommate_applications",
    metadata,
    Column("id", String, primary_key=True),  # UUID as string
    Column("post_id", String, nullable=False),
    Column("applicant_id", String, nullable=False),
    Column("tenant_id", String, nullable=False),  # post owner, frozen at apply
    Column("landlord_id", String, nullable=True),  # null for external rooms
    Column("is_platform_room", Boolean, nullable=False),
    Column("status", String(32), nullable=False),  # ApplicationStatus as string
    Column("profile", JSON, nullable=False),
    Column("terms", JSON, nullable=False),
    Column("tenant_response", JSON, nullable=True),
    Column("landlord_response", JSON, nullable=True),
    Column("confirmed_by_tenant", Boolean, nullable=False, server_default=text("false")),
    Column("confirmed_by_landlord", Boolean, nullable=False, server_default=text("false")),
    Column("confirmed_at", DateTime(timezone=True), nullable=True),
    Column("rental_id", String, nullable=True),  # set once by the confirmation gate
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Column("expires_at", DateTime(timezone=True), nullable=False),
    Column("version", Integer, nullable=False, server_default=text("1")),
)

Index("idx_roommate_applications_applicant", roommate_applications_table.c.applicant_id)
Index("idx_roommate_applications_post", roommate_applications_table.c.post_id)
Index("idx_roommate_applications_tenant", roommate_applications_table.c.tenant_id)
Index(
    "idx_roommate_applications_landlord_status",
    roommate_applications_table.c.landlord_id,
    roommate_applications_table.c.status,
)
# At most one open application per applicant and post
_OPEN_APPLICATION = text(
    "status IN ('pending', 'approved_by_tenant', 'approved_by_landlord', "
    "'awaiting_confirmation')"
)
Index(
    "uq_roommate_applications_open_per_applicant",
    roommate_applications_table.c.post_id,
    roommate_applications_table.c.applicant_id,
    unique=True,
    sqlite_where=_OPEN_APPLICATION,
    postgresql_where=_OPEN_APPLICATION,
)
# Reaper sweep
Index(
    "idx_roommate_applications_expiry",
    roommate_applications_table.c.status,
    roommate_applications_table.c.expires_at,
)


# ============================================================================
# APPLICATION RESPONSES TABLE (append-only audit log)
# ============================================================================
application_responses_table = Table(
    "application_responses",
    metadata,
    Column("id", String, primary_key=True),
    Column(
        "application_id",
        String,
        ForeignKey("roommate_applications.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("actor_id", String, nullable=False),
    Column("role", String(16), nullable=False),
    Column("action", String(16), nullable=False),
    Column("message", Text, nullable=True),
    Column("from_status", String(32), nullable=False),
    Column("to_status", String(32), nullable=False),
    Column("version", Integer, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("application_id", "version", name="uq_response_application_version"),
)

Index(
    "idx_application_responses_application",
    application_responses_table.c.application_id,
    application_responses_table.c.version,
)


# ============================================================================
# EVENTS TABLE (append-only event log)
# ============================================================================
events_table = Table(
    "events",
    metadata,
    Column("id", String, primary_key=True),
    Column("event_type", String(128), nullable=False),
    Column("payload", JSON, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

Index(
    "idx_events_type_created",
    events_table.c.event_type,
    events_table.c.created_at.desc(),
)


# ============================================================================
# DELIVERIES TABLE (per-consumer-group tracking)
# ============================================================================
deliveries_table = Table(
    "deliveries",
    metadata,
    Column("id", String, primary_key=True),
    Column("event_id", String, ForeignKey("events.id"), nullable=False),
    Column("consumer_group", String(128), nullable=False),
    Column("status", String(32), nullable=False, server_default=text("'pending'")),
    Column("claimed_at", DateTime(timezone=True), nullable=True),
    Column("delivered_at", DateTime(timezone=True), nullable=True),
    Column("delivery_error", Text, nullable=True),
    Column("retry_count", Integer, nullable=False, server_default=text("0")),
    Column("next_attempt_at", DateTime(timezone=True), nullable=True),  # retry backoff
    Column("updated_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("event_id", "consumer_group", name="uq_delivery_event_consumer"),
)

# Primary worker polling index
Index(
    "idx_deliveries_claim",
    deliveries_table.c.consumer_group,
    deliveries_table.c.status,
    deliveries_table.c.event_id,
    postgresql_where=text("status IN ('pending', 'claimed')"),
)

Index("idx_deliveries_event", deliveries_table.c.event_id)

# Stale claim detection
Index(
    "idx_deliveries_stale",
    deliveries_table.c.claimed_at,
    postgresql_where=text("status = 'claimed'"),
)

# Failed delivery monitoring
Index(
    "idx_deliveries_failed",
    deliveries_table.c.consumer_group,
    deliveries_table.c.retry_count,
    postgresql_where=text("status = 'failed'"),
)

"""open_application_unique

One open application per (post, applicant). Closed applications do not
count, so an applicant may apply again after a rejection or cancellation.

Revision ID: 8b41e07c2d5a
Revises: 3f2a9c1d7e40
Create Date: 2026-10-18 09:41:27.503118

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "8b41e07c2d5a"
down_revision: Union[str, Sequence[str], None] = "3f2a9c1d7e40"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

OPEN_APPLICATION = (
    "status IN ('pending', 'approved_by_tenant', 'approved_by_landlord', "
    "'awaiting_confirmation')"
)


def upgrade() -> None:
    """Add the partial unique index on open applications."""
    op.create_index(
        "uq_roommate_applications_open_per_applicant",
        "roommate_applications",
        ["post_id", "applicant_id"],
        unique=True,
        sqlite_where=sa.text(OPEN_APPLICATION),
        postgresql_where=sa.text(OPEN_APPLICATION),
    )


def downgrade() -> None:
    """Drop the open-application index."""
    op.drop_index(
        "uq_roommate_applications_open_per_applicant", table_name="roommate_applications"
    )

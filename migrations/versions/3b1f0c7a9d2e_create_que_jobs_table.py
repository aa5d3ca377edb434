"""create que_jobs table

Revision ID: 3b1f0c7a9d2e
Revises:
Create Date: 2026-10-17 09:12:40.118203

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3b1f0c7a9d2e"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "que_jobs",
        sa.Column(
            "priority",
            sa.Integer,
            nullable=False,
            server_default=sa.text("1"),
            comment="Lower is claimed first",
        ),
        sa.Column(
            "run_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
            comment="Earliest time the job may be claimed",
        ),
        sa.Column("job_id", sa.BigInteger, sa.Identity(always=False), nullable=False),
        sa.Column("type", sa.Text, nullable=False, comment="Job type identifier"),
        sa.Column(
            "args",
            sa.JSON,
            nullable=False,
            server_default=sa.text("'[]'"),
            comment="Positional arguments passed to run()",
        ),
        sa.Column(
            "error_count", sa.Integer, nullable=False, server_default=sa.text("0")
        ),
        sa.Column("last_error", sa.Text, nullable=True),
        # Claim order is the primary key order
        sa.PrimaryKeyConstraint("priority", "run_at", "job_id", name="que_jobs_pkey"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("que_jobs")

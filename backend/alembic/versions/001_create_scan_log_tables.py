"""Create health_scan and health_summary_log tables

Revision ID: 001
Revises: None
Create Date: 2024-05-01 00:00:00.000000+00:00

What:  Audit tables written after each external health scan and summary.
How:   JSONB payload columns and UUID keys (PostgreSQL); see
       pichealth/models/scan_log.py for the ORM side.

Rollback: downgrade() drops both tables (all logged scans are lost).
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
    op.create_table(
        "health_scan",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column(
            "image_url",
            sa.String(255),
            nullable=False,
            comment="Object key of the uploaded photo, e.g. TW_3fa9c1.jpg",
        ),
        sa.Column(
            "ocr_result",
            postgresql.JSONB(),
            nullable=False,
            comment="HealthOCRResult as returned to the client",
        ),
        sa.Column("country_code", sa.String(8), nullable=True),
        sa.Column("device_type", sa.String(64), nullable=True),
        sa.Column("add_from", sa.String(64), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_health_scan_created_at",
        "health_scan",
        [sa.text("created_at DESC")],
    )

    op.create_table(
        "health_summary_log",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("health_data", postgresql.JSONB(), nullable=True),
        sa.Column("user_profile", postgresql.JSONB(), nullable=True),
        sa.Column("custom_note", sa.Text(), nullable=True),
        sa.Column(
            "summary_result",
            postgresql.JSONB(),
            nullable=False,
            comment="HealthSummaryResponse as returned to the client",
        ),
        sa.Column("device_id", sa.String(128), nullable=True),
        sa.Column("remaining_credits", sa.Integer(), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("country_code", sa.String(8), nullable=True),
        sa.Column("client_info", postgresql.JSONB(), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_health_summary_log_created_at",
        "health_summary_log",
        [sa.text("created_at DESC")],
    )
    op.create_index(
        "idx_health_summary_log_device_id",
        "health_summary_log",
        ["device_id"],
    )


def downgrade() -> None:
    op.drop_index("idx_health_summary_log_device_id", table_name="health_summary_log")
    op.drop_index("idx_health_summary_log_created_at", table_name="health_summary_log")
    op.drop_table("health_summary_log")
    op.drop_index("idx_health_scan_created_at", table_name="health_scan")
    op.drop_table("health_scan")

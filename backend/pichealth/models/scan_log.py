"""
PicHealth API — Scan / Summary Log Models
==========================================

What:  ORM models for the two audit tables written after external calls.
How:   Inherit from the shared DeclarativeBase; Alembic migration 001
       creates both tables.
Who:   Written by ScanLogService. Nothing in the API reads them back; they
       feed the admin dashboard and accuracy reviews.

Tables:
    health_scan          one row per /api/v1/ocr-health call
                         (stored image key, OCR result, request metadata)
    health_summary_log   one row per /api/v1/health-summary call
                         (input data, profile, note, generated summary)

Column types are the generic SQLAlchemy ones (Uuid, JSON with a JSONB
variant on PostgreSQL), so the models also run against SQLite in tests.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from pichealth.database import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HealthScan(Base):
    """
    One health-device scan from the external API.

    Query Patterns:
        - Recent scans for review: ORDER BY created_at DESC
          → idx_health_scan_created_at
        - Scans by country: WHERE country_code = :cc
    """

    __tablename__ = "health_scan"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # What: Object key in the image bucket, e.g. TW_3fa9c1.jpg
    image_url: Mapped[str] = mapped_column(String(255), nullable=False)

    # What: The HealthOCRResult exactly as returned to the client
    ocr_result: Mapped[dict] = mapped_column(JSONType, nullable=False)

    country_code: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    device_type: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    add_from: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    __table_args__ = (
        Index("idx_health_scan_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<HealthScan(id={self.id}, image_url='{self.image_url}')>"


class HealthSummaryLog(Base):
    """One generated health summary, with the inputs that produced it."""

    __tablename__ = "health_summary_log"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # ── Input ─────────────────────────────────────────────────────────────
    health_data: Mapped[Optional[Any]] = mapped_column(JSONType, nullable=True)
    user_profile: Mapped[Optional[Any]] = mapped_column(JSONType, nullable=True)
    custom_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ── Output ────────────────────────────────────────────────────────────
    summary_result: Mapped[dict] = mapped_column(JSONType, nullable=False)

    # ── Caller ────────────────────────────────────────────────────────────
    device_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    remaining_credits: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    country_code: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    client_info: Mapped[Optional[Any]] = mapped_column(JSONType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    __table_args__ = (
        Index("idx_health_summary_log_created_at", created_at.desc()),
        Index("idx_health_summary_log_device_id", "device_id"),
    )

    def __repr__(self) -> str:
        return f"<HealthSummaryLog(id={self.id}, device_id='{self.device_id}')>"

"""
PicHealth API — Scan Log Service
=================================

What:  Writes audit rows for external health scans and health summaries,
       and uploads the scanned photo that a scan row points at.
How:   Two layers:

           log_health_scan / log_health_summary
               insert one row; raise DatabaseError on failure

           record_health_scan / record_health_summary
               best-effort wrappers used by the routes: upload + insert,
               every failure logged and swallowed

Who:   Called from the /api/v1/ocr-health and /api/v1/health-summary routes
       after the result has been computed.

Propagation policy:
    A storage or database failure must never change what the client sees.
    The recorders catch PicHealthError (storage / DB) and log it with its
    context; programming errors still propagate.
"""

import logging
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from pichealth.database import session_scope
from pichealth.exceptions import DatabaseError, PicHealthError
from pichealth.models.scan_log import HealthScan, HealthSummaryLog
from pichealth.services.image_service import DecodedImage
from pichealth.services.storage_service import ImageStore, generate_object_key

logger = logging.getLogger(__name__)


class ScanLogService:
    """
    Inserts scan and summary rows.

    Args:
        session_factory: Returns an async context manager yielding a session
            that commits on exit. Defaults to database.session_scope; tests
            pass a fake.
    """

    def __init__(self, session_factory: Optional[Callable] = None):
        self._session_scope = session_factory or session_scope

    async def log_health_scan(
        self,
        image_url: str,
        ocr_result: Dict[str, Any],
        country_code: Optional[str] = None,
        device_type: Optional[str] = None,
        add_from: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> HealthScan:
        row = HealthScan(
            image_url=image_url,
            ocr_result=ocr_result,
            country_code=country_code or None,
            device_type=device_type or None,
            add_from=add_from or None,
            ip_address=ip_address or None,
        )
        try:
            async with self._session_scope() as session:
                session.add(row)
                await session.flush()
        except SQLAlchemyError as e:
            raise DatabaseError(
                message="Failed to log health scan",
                context={"table": "health_scan", "error": str(e)},
            )
        return row

    async def log_health_summary(
        self,
        summary_result: Dict[str, Any],
        health_data: Optional[Dict[str, Any]] = None,
        user_profile: Optional[Dict[str, Any]] = None,
        custom_note: Optional[str] = None,
        device_id: Optional[str] = None,
        remaining_credits: Optional[int] = None,
        ip_address: Optional[str] = None,
        country_code: Optional[str] = None,
        client_info: Optional[Dict[str, Any]] = None,
    ) -> HealthSummaryLog:
        row = HealthSummaryLog(
            summary_result=summary_result,
            health_data=health_data,
            user_profile=user_profile,
            custom_note=custom_note or None,
            device_id=device_id or None,
            remaining_credits=remaining_credits,
            ip_address=ip_address or None,
            country_code=country_code or None,
            client_info=client_info,
        )
        try:
            async with self._session_scope() as session:
                session.add(row)
                await session.flush()
        except SQLAlchemyError as e:
            raise DatabaseError(
                message="Failed to log health summary",
                context={"table": "health_summary_log", "error": str(e)},
            )
        return row

    # ── Best-effort recorders ─────────────────────────────────────────────

    async def record_health_scan(
        self,
        store: ImageStore,
        image: DecodedImage,
        ocr_result: Dict[str, Any],
        country_code: Optional[str] = None,
        device_type: Optional[str] = None,
        add_from: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> Optional[str]:
        """
        Upload the photo and log the scan.

        Returns:
            The stored object key, or None if either step failed.
        """
        key = generate_object_key(country_code, image.extension)
        try:
            await store.upload(image.data, image.mime_type, key)
            await self.log_health_scan(
                image_url=key,
                ocr_result=ocr_result,
                country_code=country_code,
                device_type=device_type,
                add_from=add_from,
                ip_address=ip_address,
            )
        except PicHealthError as e:
            logger.error("Scan record not saved (%s): %s", e.code, e.message, extra={"context": e.context})
            return None

        logger.info("Scan record saved: %s", key)
        return key

    async def record_health_summary(self, **fields: Any) -> bool:
        """Log a summary; returns False (after logging) if the insert failed."""
        try:
            await self.log_health_summary(**fields)
        except PicHealthError as e:
            logger.error("Summary record not saved (%s): %s", e.code, e.message, extra={"context": e.context})
            return False
        return True


# ── Singleton Instance ────────────────────────────────────────────────────
scan_log_service = ScanLogService()

"""
Persistence helpers for the quoting and booking flows.

Thin async queries over the SQLAlchemy models; callers own the session and
the transaction.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .availability import SlotTable
from .models import AvailabilitySlotsRecord, Business, Service

logger = logging.getLogger(__name__)


def _as_uuid(value: str | uuid.UUID) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


async def get_business(session: AsyncSession, business_id: str | uuid.UUID) -> Optional[Business]:
    key = _as_uuid(business_id)
    if key is None:
        return None
    result = await session.execute(select(Business).where(Business.id == key))
    return result.scalar_one_or_none()


async def get_service(
    session: AsyncSession,
    business_id: str | uuid.UUID,
    service_id: str | uuid.UUID,
) -> Optional[Service]:
    """Service by id, only if it belongs to the business."""
    business_key = _as_uuid(business_id)
    service_key = _as_uuid(service_id)
    if business_key is None or service_key is None:
        return None
    result = await session.execute(
        select(Service).where(
            Service.id == service_key,
            Service.business_id == business_key,
        )
    )
    return result.scalar_one_or_none()


async def get_availability_record(
    session: AsyncSession,
    business_id: str | uuid.UUID,
    for_update: bool = False,
) -> Optional[AvailabilitySlotsRecord]:
    """
    The business's slot table row.

    With for_update=True the row is locked (SELECT ... FOR UPDATE) until the
    surrounding transaction ends, serialising concurrent bookings.
    """
    key = _as_uuid(business_id)
    if key is None:
        return None
    stmt = select(AvailabilitySlotsRecord).where(AvailabilitySlotsRecord.business_id == key)
    if for_update:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def save_availability_slots(
    session: AsyncSession,
    business_id: str | uuid.UUID,
    slots: SlotTable,
) -> AvailabilitySlotsRecord:
    """Insert or replace the business's slot table (flushes, does not commit)."""
    record = await get_availability_record(session, business_id, for_update=True)
    if record is None:
        record = AvailabilitySlotsRecord(business_id=_as_uuid(business_id), slots=slots)
        session.add(record)
    else:
        record.slots = slots
    await session.flush()
    logger.info(f"Saved availability for business {business_id}: {len(slots)} dates")
    return record

"""
Maintenance reconciliation and threshold events.

A device update first reconciles the stored maintenance list with the
submitted one, then emits MAINTENANCE_REQUIRED for every record whose
service threshold the odometer crossed.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tracker_backend.app.models.device import Device
from tracker_backend.app.models.device_event import DeviceEvent
from tracker_backend.app.models.enums import DeviceEventType
from tracker_backend.app.models.maintenance import Maintenance

logger = logging.getLogger(__name__)

ODOMETER_EPSILON = 1e-6


async def maintenances_of(db: AsyncSession, device_id: int) -> List[Maintenance]:
    result = await db.execute(
        select(Maintenance)
        .where(Maintenance.device_id == device_id)
        .order_by(Maintenance.index_no, Maintenance.id)
    )
    return list(result.scalars().all())


async def reconcile_maintenances(db: AsyncSession, device: Device, desired: Iterable) -> List[Maintenance]:
    """
    Make the device's maintenance list match `desired`.

    Records are matched by id: matched records get the submitted fields
    copied in place, stored records missing from `desired` are deleted
    (together with the events pointing at them), and the remaining
    submitted records are inserted for the device.

    Args:
        db: Database session
        device: Device being updated
        desired: Submitted records (anything with id, name, index_no,
            last_service and service_interval)

    Returns:
        The reconciled list, ordered by index_no
    """
    pending = list(desired)
    current = await maintenances_of(db, device.id)
    kept = []
    removed_ids = []

    for existing in current:
        match = next((item for item in pending if item.id is not None and item.id == existing.id), None)
        if match is None:
            removed_ids.append(existing.id)
            continue
        existing.copy_from(match)
        existing.device_id = device.id
        pending.remove(match)
        kept.append(existing)

    if removed_ids:
        await db.execute(delete(DeviceEvent).where(DeviceEvent.maintenance_id.in_(removed_ids)))
        await db.execute(delete(Maintenance).where(Maintenance.id.in_(removed_ids)))

    for item in pending:
        maintenance = Maintenance(device_id=device.id)
        maintenance.copy_from(item)
        db.add(maintenance)
        kept.append(maintenance)

    await db.flush()
    return sorted(kept, key=lambda m: (m.index_no, m.id))


def crossed_thresholds(maintenances: Sequence[Maintenance], previous_odometer: float,
                       new_odometer: float) -> List[Maintenance]:
    """
    Records whose service threshold lies in (previous, new].

    Nothing is due when the odometer moved by less than ODOMETER_EPSILON.
    """
    if abs(new_odometer - previous_odometer) < ODOMETER_EPSILON:
        return []
    return [
        maintenance for maintenance in maintenances
        if previous_odometer < maintenance.service_threshold <= new_odometer
    ]


async def emit_maintenance_events(
    db: AsyncSession,
    device: Device,
    maintenances: Sequence[Maintenance],
    previous_odometer: float,
    now: Optional[datetime] = None
) -> List[DeviceEvent]:
    """
    Persist a MAINTENANCE_REQUIRED event per crossed threshold.

    Events reference the device, its latest position and the maintenance record.
    """
    now = now or datetime.now(timezone.utc)
    events = []
    for maintenance in crossed_thresholds(maintenances, previous_odometer, device.odometer):
        event = DeviceEvent(
            time=now,
            type=DeviceEventType.MAINTENANCE_REQUIRED,
            device_id=device.id,
            position_id=device.latest_position_id,
            maintenance_id=maintenance.id,
        )
        db.add(event)
        events.append(event)
        logger.info(
            "Maintenance '%s' due for device %s (odometer %.1f -> %.1f)",
            maintenance.name, device.unique_id, previous_odometer, device.odometer
        )

    if events:
        await db.flush()
    return events

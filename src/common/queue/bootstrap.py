# src/common/queue/bootstrap.py
"""Build the queue engine from the database at startup."""

import logging
from datetime import datetime, timedelta
from functools import partial
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from src.common.config import settings
from src.models.models import Department, Doctor, Patient

from .engine import DURATION_LOOKBACK_DAYS, QueueEngine
from .notifications import PatientContact, QueueNotifier
from .store import SqlTokenStore

logger = logging.getLogger(__name__)

async def sync_reference_data(engine: QueueEngine, session_factory: async_sessionmaker) -> None:
    """Register every department and active doctor with the engine."""
    async with session_factory() as session:
        departments = (await session.execute(select(Department))).scalars().all()
        doctors = (
            await session.execute(select(Doctor).where(Doctor.is_active.is_(True)))
        ).scalars().all()

    for department in departments:
        engine.register_department(department.id, department.code)
    for doctor in doctors:
        engine.register_doctor(
            doctor.id,
            doctor.department_id,
            consultation_minutes=doctor.consultation_duration_minutes,
            max_patients_per_day=doctor.max_patients_per_day,
            is_available=doctor.is_available,
        )
    logger.info("Registered %d departments and %d doctors", len(departments), len(doctors))


async def load_patient_contact(session_factory: async_sessionmaker, patient_id: int) -> Optional[PatientContact]:
    async with session_factory() as session:
        patient = await session.get(Patient, patient_id)
    if patient is None:
        return None
    return PatientContact(name=patient.full_name, email=patient.email)


async def create_queue_engine(
    session_factory: async_sessionmaker,
    clock: Callable[[], datetime] = datetime.now,
) -> QueueEngine:
    store = SqlTokenStore(session_factory)
    engine = QueueEngine(store=store, clock=clock)
    await sync_reference_data(engine, session_factory)

    lookback = max(engine.retention_days, DURATION_LOOKBACK_DAYS)
    engine.restore(await store.load_since(engine.today() - timedelta(days=lookback)))

    if settings.EMAIL_ENABLED:
        engine.notifier = QueueNotifier(engine, partial(load_patient_contact, session_factory))
        logger.info("Patient e-mail notifications enabled via %s:%s", settings.SMTP_HOST, settings.SMTP_PORT)
    return engine

# scripts/seed_test_data.py
"""
Demo queue for manual testing of the live board and staff screens.
Seeds reference data, then runs a short morning through the queue engine so
every status shows up: one completed visit, one patient in the room, one
called, a skipped patient and an emergency that jumped the queue.

Run against an empty database (python -m src.seed.seed_database --clear first):
    python -m scripts.seed_test_data
"""

import asyncio

from sqlalchemy import select

from src.common.database.database import async_session
from src.common.queue import derive_priority
from src.common.queue.bootstrap import create_queue_engine
from src.models.models import Department, Doctor, Patient, TokenPriority
from src.seed.seed_database import seed_reference_data


async def seed_demo_queue():
    async with async_session() as session:
        await seed_reference_data(session)
        await session.commit()

        opd = (await session.execute(select(Department).where(Department.code == "OPD"))).scalar_one()
        doctors = (
            await session.execute(select(Doctor).where(Doctor.department_id == opd.id).order_by(Doctor.id))
        ).scalars().all()
        patients = (await session.execute(select(Patient).order_by(Patient.id))).scalars().all()

    engine = await create_queue_engine(async_session)
    first, second = doctors[0], doctors[1]

    for patient in patients[:4]:
        priority = derive_priority(is_pregnant=patient.is_pregnant, is_senior_citizen=patient.is_senior_citizen)
        await engine.create_token(patient.id, opd.id, opd.code, doctor_id=first.id, priority=priority)
    emergency = await engine.create_token(
        patients[4].id, opd.id, opd.code, doctor_id=first.id, priority=TokenPriority.EMERGENCY
    )
    await engine.create_token(patients[0].id, opd.id, opd.code)  # shared OPD queue

    # Emergency goes first and finishes
    called = await engine.call_next(first.id)
    assert called.id == emergency.id
    await engine.start_consultation(called.id)
    await engine.end_consultation(called.id)

    # Next patient does not answer and is sent back
    called = await engine.call_next(first.id)
    await engine.skip(called.id)

    # Someone is in the room now
    called = await engine.call_next(first.id)
    await engine.start_consultation(called.id)

    # Second doctor picks up from the shared queue
    await engine.call_next(second.id)

    print("✓ Demo queue ready")
    for token in sorted(engine.tokens(), key=lambda token: token.id):
        print(f"  {token.token_number:<20} {token.priority.value:<15} {token.status.value}")


if __name__ == "__main__":
    asyncio.run(seed_demo_queue())

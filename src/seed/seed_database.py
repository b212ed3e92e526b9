# src/seed/seed_database.py
"""
Reference data seed for the hospital queue service.
Creates departments, doctors and a handful of walk-in patients.

Usage:
    python -m src.seed.seed_database

Options:
    --clear     Remove tokens, patients, doctors and departments first
    --no-patients   Seed departments and doctors only
"""

import asyncio
import argparse
from typing import Dict, List

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.common.database.database import async_session
from src.models.models import Department, Doctor, Patient, Token


# ============================================================================
# SAMPLE DATA
# ============================================================================

# (name, code, description, floor)
DEPARTMENTS = [
    ("General Medicine", "OPD", "General OPD and Primary Care", 1),
    ("Cardiology", "CARD", "Heart and Cardiovascular Care", 2),
    ("Orthopedics", "ORTH", "Bone and Joint Care", 2),
    ("Pediatrics", "PED", "Child Healthcare", 1),
    ("Gynecology", "GYN", "Women Health Care", 3),
    ("Dermatology", "DERM", "Skin Care", 1),
    ("ENT", "ENT", "Ear Nose Throat", 2),
    ("Emergency", "EMER", "Emergency Services", 0),
]

# (employee_id, first, last, specialization, department code, room, minutes, max per day)
DOCTORS = [
    ("DOC001", "Rajesh", "Sharma", "General Physician", "OPD", "101", 10, 60),
    ("DOC002", "Priya", "Patel", "Cardiologist", "CARD", "201", 15, 40),
    ("DOC003", "Amit", "Kumar", "Orthopedic Surgeon", "ORTH", "206", 15, 35),
    ("DOC004", "Sneha", "Reddy", "Pediatrician", "PED", "111", 12, 50),
    ("DOC005", "Kavita", "Singh", "Gynecologist", "GYN", "301", 15, 40),
    ("DOC006", "Suresh", "Nair", "General Physician", "OPD", "102", 10, 60),
    ("DOC007", "Meera", "Iyer", "Dermatologist", "DERM", "116", 12, 45),
    ("DOC008", "Vikram", "Joshi", "ENT Specialist", "ENT", "211", 15, 40),
    ("DOC009", "Arun", "Menon", "Emergency Physician", "EMER", "E01", 10, 100),
]

# (first, last, phone, email, age, gender, pregnant)
PATIENTS = [
    ("Ravi", "Verma", "9000000001", "ravi.verma@example.com", 34, "M", False),
    ("Lakshmi", "Pillai", "9000000002", None, 67, "F", False),
    ("Anjali", "Desai", "9000000003", "anjali.desai@example.com", 29, "F", True),
    ("Karan", "Mehta", "9000000004", None, 45, "M", False),
    ("Farah", "Khan", "9000000005", "farah.khan@example.com", 72, "F", False),
]

SENIOR_CITIZEN_AGE = 60


async def create_departments(session: AsyncSession) -> Dict[str, Department]:
    existing = {
        department.code: department
        for department in (await session.execute(select(Department))).scalars().all()
    }
    for name, code, description, floor in DEPARTMENTS:
        if code in existing:
            continue
        department = Department(name=name, code=code, description=description, floor_number=floor)
        session.add(department)
        existing[code] = department
    await session.flush()
    return existing


async def create_doctors(session: AsyncSession, departments: Dict[str, Department]) -> List[Doctor]:
    existing = {
        doctor.employee_id: doctor
        for doctor in (await session.execute(select(Doctor))).scalars().all()
    }
    for employee_id, first, last, specialization, code, room, minutes, capacity in DOCTORS:
        if employee_id in existing:
            continue
        doctor = Doctor(
            employee_id=employee_id,
            first_name=first,
            last_name=last,
            specialization=specialization,
            department_id=departments[code].id,
            room_number=room,
            consultation_duration_minutes=minutes,
            max_patients_per_day=capacity,
        )
        session.add(doctor)
        existing[employee_id] = doctor
    await session.flush()
    return list(existing.values())


async def create_patients(session: AsyncSession) -> List[Patient]:
    existing = {
        patient.phone: patient
        for patient in (await session.execute(select(Patient))).scalars().all()
    }
    for first, last, phone, email, age, gender, pregnant in PATIENTS:
        if phone in existing:
            continue
        patient = Patient(
            first_name=first,
            last_name=last,
            phone=phone,
            email=email,
            age=age,
            gender=gender,
            is_senior_citizen=age >= SENIOR_CITIZEN_AGE,
            is_pregnant=pregnant,
        )
        session.add(patient)
        existing[phone] = patient
    await session.flush()
    return list(existing.values())


async def seed_reference_data(session: AsyncSession, with_patients: bool = True) -> Dict[str, Department]:
    """Idempotent: rows that already exist (by code, employee id or phone) are left alone."""
    departments = await create_departments(session)
    await create_doctors(session, departments)
    if with_patients:
        await create_patients(session)
    return departments


async def clear_database(session: AsyncSession):
    """Clear all seeded data, dependents first."""
    for table in (Token, Patient, Doctor, Department):
        await session.execute(delete(table))
    await session.commit()
    print("✓ Database cleared")


async def seed_database(clear: bool = False, with_patients: bool = True):
    """Main seeding function"""
    async with async_session() as session:
        try:
            if clear:
                await clear_database(session)
            await seed_reference_data(session, with_patients=with_patients)
            await session.commit()
            print(f"✓ Seeded {len(DEPARTMENTS)} departments and {len(DOCTORS)} doctors")
        except Exception as e:
            await session.rollback()
            print(f"\n❌ Error during seeding: {e}")
            raise


def main():
    parser = argparse.ArgumentParser(description="Seed the queue database with reference data")
    parser.add_argument("--clear", action="store_true", help="Clear existing data before seeding")
    parser.add_argument("--no-patients", action="store_true", help="Skip sample patients")
    args = parser.parse_args()

    asyncio.run(seed_database(clear=args.clear, with_patients=not args.no_patients))


if __name__ == "__main__":
    main()

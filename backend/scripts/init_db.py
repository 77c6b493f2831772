"""
Initialize the database: create the users, appointments and medical_records tables.
Run with: python -m scripts.init_db
"""

import asyncio
from ehr_portal.config import get_settings
from ehr_portal.database import Base, build_engine
from ehr_portal.models import User, Appointment, MedicalRecord  # noqa: F401


async def init():
    settings = get_settings()
    engine = build_engine(settings.database_url)
    print("Creating database tables...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print(f"Created: {', '.join(sorted(Base.metadata.tables))}")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(init())

"""
Database setup script
"""
import asyncio
from datetime import date, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from buildtrack.api.auth import get_password_hash
from buildtrack.database import engine, create_tables
from buildtrack.models.activity import Activity
from buildtrack.models.daily_progress import DailyProgress
from buildtrack.models.milestone import Milestone
from buildtrack.models.project import Project, SchedulePhase
from buildtrack.models.user import User, UserRole


async def setup_database():
    """Create tables and seed initial data"""
    print("Creating database tables...")
    await create_tables()
    print("Tables created")

    today = date.today()
    now = datetime.combine(today, datetime.min.time())

    AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession)
    async with AsyncSessionLocal() as session:
        admin = User(
            email="admin@buildtrack.io",
            full_name="Site Admin",
            hashed_password=get_password_hash("admin123"),
            role=UserRole.ADMIN.value,
        )
        manager = User(
            email="manager@buildtrack.io",
            full_name="Max Manager",
            hashed_password=get_password_hash("manager123"),
            role=UserRole.MANAGER.value,
        )
        client = User(
            email="client@buildtrack.io",
            full_name="Cleo Client",
            hashed_password=get_password_hash("client123"),
            role=UserRole.CLIENT.value,
        )
        session.add_all([admin, manager, client])
        await session.flush()

        project = Project(
            title="Harbour View Apartment",
            site_address="12 Harbour Road",
            status="in_progress",
            start_date=today - timedelta(days=30),
            end_date=today + timedelta(days=90),
            manager_id=manager.id,
            client_id=client.id,
        )
        session.add(project)
        await session.flush()

        phase = SchedulePhase(
            project_id=project.id,
            name="Structure",
            start_date=now - timedelta(days=14),
            end_date=now + timedelta(days=21),
            status="active",
            activities=[
                Activity(
                    title="Ground floor slab", contractor="Concrete Co",
                    start_date=now - timedelta(days=14), end_date=now - timedelta(days=10),
                    status="completed", progress=100, category="structural",
                    phase="construction", week_number=1, created_by=manager.id,
                ),
                Activity(
                    title="First floor columns", contractor="Concrete Co",
                    start_date=now + timedelta(days=2), end_date=now + timedelta(days=6),
                    category="structural", phase="construction", week_number=3,
                    created_by=manager.id,
                ),
            ],
        )
        day = DailyProgress(
            project_id=project.id,
            date=today,
            weather_condition="Clear",
            crew_size=12,
            submitted_by=manager.id,
            activities=[
                Activity(
                    title="Scaffold inspection", contractor="SafeScaff",
                    start_date=now + timedelta(hours=8), end_date=now + timedelta(hours=10),
                    status="in_progress", category="other", phase="site_preliminaries",
                    created_by=manager.id,
                ),
            ],
        )
        milestone = Milestone(
            project_id=project.id,
            title="Structure topped out",
            due_date=today + timedelta(days=21),
            priority="high",
            assigned_to=manager.id,
        )
        session.add_all([phase, day, milestone])

        await session.commit()
        print("Seed data created")

    print("\nDatabase setup complete!")
    print("\nDefault logins:")
    print("  admin@buildtrack.io / admin123")
    print("  manager@buildtrack.io / manager123")
    print("  client@buildtrack.io / client123")


if __name__ == "__main__":
    asyncio.run(setup_database())

"""
Seed script to populate database with demo data
Creates: admin, approved doctors, patients, diseases
"""
import asyncio

from app.config import get_settings
from app.constants import ApprovalStatus, DiseaseCategory, Prevalence, Role, Severity
from app.database import init_db
from app.models import Disease, DoctorInfo, User
from app.security import hash_password
from app.utils.dates import utcnow

DEMO_PASSWORD = "Demo1234."

DOCTORS = [
    {"first_name": "Mehmet", "last_name": "Yilmaz", "specialization": "Cardiology",
     "hospital": "City Hospital", "experience": 15, "location": "Istanbul"},
    {"first_name": "Serkan", "last_name": "Kaya", "specialization": "Internal Medicine",
     "hospital": "State Hospital", "experience": 8, "location": "Ankara"},
    {"first_name": "Kerem", "last_name": "Demir", "specialization": "Neurology",
     "hospital": "Private Clinic", "experience": 12, "location": "Izmir"},
]

PATIENTS = [
    ("Ayse", "Celik"),
    ("Fatma", "Ozturk"),
    ("Mustafa", "Aydin"),
    ("Zeynep", "Yildiz"),
    ("Emre", "Arslan"),
]

DISEASES = [
    {"name": "Type 2 Diabetes", "category": DiseaseCategory.METABOLIC, "severity": Severity.HIGH,
     "prevalence": Prevalence.VERY_COMMON, "description": "Chronic condition affecting blood sugar regulation.",
     "symptoms": ["thirst", "fatigue", "blurred vision"]},
    {"name": "Asthma", "category": DiseaseCategory.RESPIRATORY, "severity": Severity.MEDIUM,
     "prevalence": Prevalence.COMMON, "description": "Inflammation and narrowing of the airways.",
     "symptoms": ["wheezing", "shortness of breath"]},
    {"name": "Migraine", "category": DiseaseCategory.NEUROLOGICAL, "severity": Severity.MEDIUM,
     "prevalence": Prevalence.COMMON, "description": "Recurring headaches of moderate to severe intensity.",
     "symptoms": ["headache", "nausea", "light sensitivity"]},
]


async def _create_or_get_user(*, first_name: str, last_name: str, role: Role, **extra) -> User:
    """Create user if not exists, return existing if found."""
    username = f"{first_name}{last_name}".lower()
    existing = await User.find_one(User.username == username)
    if existing:
        print(f"[SKIP] User '{username}' already exists")
        return existing
    user = User(
        username=username,
        email=f"{username}@example.com",
        password_hash=hash_password(DEMO_PASSWORD),
        first_name=first_name,
        last_name=last_name,
        role=role,
        is_verified=True,
        **extra,
    )
    await user.insert()
    print(f"[OK] Created {role.value}: {username}")
    return user


async def create_demo_users() -> list[User]:
    print("\n=== Creating Users ===")
    users = [await _create_or_get_user(first_name="Site", last_name="Admin", role=Role.ADMIN)]
    for data in DOCTORS:
        profile = dict(data)
        first_name, last_name = profile.pop("first_name"), profile.pop("last_name")
        info = DoctorInfo(approval_status=ApprovalStatus.APPROVED, approval_date=utcnow(), **profile)
        users.append(
            await _create_or_get_user(
                first_name=first_name, last_name=last_name, role=Role.DOCTOR, doctor_info=info
            )
        )
    for first_name, last_name in PATIENTS:
        users.append(await _create_or_get_user(first_name=first_name, last_name=last_name, role=Role.PATIENT))
    return users


async def create_demo_diseases(admin: User) -> None:
    print("\n=== Creating Diseases ===")
    for data in DISEASES:
        if await Disease.find_one(Disease.name == data["name"]):
            print(f"[SKIP] Disease '{data['name']}' already exists")
            continue
        await Disease(created_by=admin.id, **data).insert()
        print(f"[OK] Created disease: {data['name']}")


async def main():
    print("=" * 50)
    print("Seeding demo data")
    print("=" * 50)

    settings = get_settings()
    print(f"\nMongoDB URI: {settings.MONGODB_URI}")

    await init_db()
    print("[OK] Connected to database\n")

    users = await create_demo_users()
    await create_demo_diseases(users[0])

    print("\n" + "=" * 50)
    print("[SUCCESS] Demo data seeding completed!")
    print("=" * 50)
    print(f"\nLogin credentials (password for all: {DEMO_PASSWORD}):")
    for user in users:
        print(f"  [{user.role.value.upper()}] {user.username} | {user.email}")


if __name__ == "__main__":
    asyncio.run(main())

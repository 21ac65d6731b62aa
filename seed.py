from decimal import Decimal

from adpanel.auth import get_password_hash
from adpanel.database import SessionLocal, engine, Base
from adpanel.models import Package, User

# Create tables
Base.metadata.create_all(bind=engine)

db = SessionLocal()

# Packages
packages = [
    Package(
        name="Starter",
        features={"max_groups": 1, "max_screens": 1, "max_storage_mb": 512},
        price=Decimal("499.00"),
        duration_days=30,
    ),
    Package(
        name="Business",
        features={"max_groups": 5, "max_screens": 10, "max_storage_mb": 5120},
        price=Decimal("1999.00"),
        duration_days=30,
    ),
    Package(
        name="Enterprise",
        features={"max_groups": 50, "max_screens": 100, "max_storage_mb": 51200},
        price=Decimal("17999.00"),
        duration_days=365,
    ),
]

created = 0
for package in packages:
    if not db.query(Package).filter(Package.name == package.name).first():
        db.add(package)
        created += 1

# Admin account
admin_email = "admin@example.com"
admin = db.query(User).filter(User.email == admin_email).first()
if admin is None:
    admin = User(
        name="Super Admin",
        email=admin_email,
        password_hash=get_password_hash("change-me"),
        is_admin=True,
    )
    db.add(admin)

db.commit()

print("Database seeded successfully!")
print(f"  - {created} packages")
print(f"  - Admin account: {admin_email} (change its password)")

db.close()

#!/usr/bin/env python3
"""
Admin Profile Seed Script
Grants console access to an identity that already exists at the identity provider.

Usage:
    python -m scripts.seed_admin <principal_id> <email> [role]

Example:
    python -m scripts.seed_admin 6f1c2d3e-0000-4000-8000-000000000001 admin@oakline.com super_admin
"""
import sys
import os

# Add the parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.orm import Session
from app.database import SessionLocal, init_db
from app.models.db_models import AdminProfileDB

VALID_ROLES = ("admin", "manager", "super_admin")


def create_admin_profile(principal_id: str, email: str, role: str = "admin") -> bool:
    """Create or upgrade an admin profile."""
    # Ensure tables exist
    init_db()

    db: Session = SessionLocal()
    try:
        existing = db.query(AdminProfileDB).filter(AdminProfileDB.id == principal_id).first()

        if existing:
            if existing.role == role and existing.is_active:
                print(f"Admin profile for '{principal_id}' already has role '{role}'.")
                return False
            existing.role = role
            existing.is_active = True
            db.commit()
            print(f"Updated admin profile '{principal_id}' to role '{role}'.")
            return True

        admin_profile = AdminProfileDB(
            id=principal_id,
            email=email,
            role=role,
            is_active=True,
        )

        db.add(admin_profile)
        db.commit()

        print(f"Admin profile created successfully!")
        print(f"  Principal: {principal_id}")
        print(f"  Email: {email}")
        print(f"  Role: {role}")
        return True

    except Exception as e:
        print(f"Error creating admin profile: {e}")
        db.rollback()
        return False
    finally:
        db.close()


def main():
    if len(sys.argv) not in (3, 4):
        print(__doc__)
        sys.exit(1)

    principal_id = sys.argv[1]
    email = sys.argv[2]
    role = sys.argv[3] if len(sys.argv) == 4 else "admin"

    # Basic validation
    if "@" not in email:
        print("Error: Invalid email format.")
        sys.exit(1)

    if role not in VALID_ROLES:
        print(f"Error: Role must be one of {', '.join(VALID_ROLES)}.")
        sys.exit(1)

    success = create_admin_profile(principal_id, email, role)
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()

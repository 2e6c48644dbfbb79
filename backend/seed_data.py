"""Seed development data for CafeStock.

Creates the tables (SQLite), the default categories and units, and a
bootstrap manager account so the dashboard can be signed into.

Usage:
    cd backend
    MANAGER_USERNAME=owner MANAGER_PASSWORD='Str0ng!Passw0rd' python seed_data.py
"""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from cafestock.core.config import settings
from cafestock.core.exceptions import CafeStockError
from cafestock.db.base import Base
from cafestock.db.session import SessionLocal, engine
from cafestock.services.lifecycle import EntityKind, LifecycleManager
from cafestock.services.reference_service import seed_reference_data
from cafestock.services.team_service import TeamService


def seed():
    """Insert reference data and the bootstrap manager."""
    if settings.database_url.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        created = seed_reference_data(db)
        print(f"  + Categories ({created['categories']}), Units ({created['units']})")

        username = os.environ.get("MANAGER_USERNAME", "manager")
        password = os.environ.get("MANAGER_PASSWORD")
        if not password:
            print("MANAGER_PASSWORD not set; skipping manager account.")
            return

        if LifecycleManager(db).find_active_by_name(EntityKind.USER, username):
            print(f"  = Manager '{username}' already exists")
            return
        TeamService(db).create_manager(username, password)
        print(f"  + Manager '{username}'")
    except CafeStockError as e:
        print(f"Error seeding data: {e.message}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed()
    print("Seed data committed successfully.")

# scripts/setup/init_db.py
"""
Initialize database — creates the locations and activity log tables.
Run once before first launch, or after adding new models.
Usage: python scripts/setup/init_db.py [--seed "Main Gate:500" "Food Court:300"]
"""

import argparse
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from sqlalchemy import inspect, text
from crowd_balance.database import create_tables, engine, SessionLocal
from crowd_balance.config import settings
from crowd_balance.services import crowd_service
from crowd_balance.services.errors import ValidationError


def seed_locations(seeds):
    db = SessionLocal()
    try:
        for seed in seeds:
            name, _, capacity = seed.rpartition(":")
            try:
                loc = crowd_service.add_location(db, name, int(capacity))
                print(f"   ✓ {loc.name} (capacity {loc.capacity})")
            except (ValidationError, ValueError) as e:
                print(f"   ⚠️  Skipped '{seed}': {e}")
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(description="Create tables and optionally seed locations")
    parser.add_argument("--seed", nargs="*", default=[], metavar="NAME:CAPACITY")
    args = parser.parse_args()

    print("🗄️  Crowd Balance DB Initialization")
    print("=" * 40)
    print(f"📡 Database: {settings.DATABASE_URL}")

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("✅ Database connection OK")
    except Exception as e:
        print(f"❌ Cannot connect to database: {e}")
        sys.exit(1)

    print("\n📋 Creating tables...")
    create_tables()
    tables = sorted(inspect(engine).get_table_names())
    print(f"✅ Tables ready ({len(tables)} total):")
    for t in tables:
        print(f"   ✓ {t}")

    if args.seed:
        print("\n📍 Seeding locations...")
        seed_locations(args.seed)

    print("\n🎉 Database ready! You can now start the backend:")
    print(f"   uvicorn crowd_balance.main:app --host 0.0.0.0 --port {settings.BACKEND_PORT} --reload")


if __name__ == "__main__":
    main()

"""Standalone script to create DB tables and seed sample reference options."""
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.database import engine, SessionLocal, Base
from app.models import ReferenceOption  # noqa: F401
from app.seed import seed_reference_options

if __name__ == "__main__":
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_reference_options(db)
        print("Reference options seeded: boards, grades, subjects, cities, areas, modes, genders.")
    finally:
        db.close()

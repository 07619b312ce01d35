#!/usr/bin/env python3
"""Initialize database tables.

Pass ``--seed-body-areas`` to also fill the full body area catalog.
"""
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from clinic import create_app
from clinic.extensions import db

from seed_body_areas import seed_body_areas


def init_database(seed_areas: bool = False):
    app = create_app()
    with app.app_context():
        db.create_all()
        print(f"✅ Database tables initialized at {app.config['SQLALCHEMY_DATABASE_URI']}")

    if seed_areas:
        seed_body_areas()
    else:
        print("ℹ️  Body area catalog not seeded (run with --seed-body-areas)")


if __name__ == "__main__":
    init_database(seed_areas="--seed-body-areas" in sys.argv[1:])

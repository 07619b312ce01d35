#!/usr/bin/env python3
"""Seed the body-area catalog used by full body treatments."""
import sys
from pathlib import Path

# Add the parent directory to the path so we can import the clinic package
sys.path.insert(0, str(Path(__file__).parent.parent))

from clinic import create_app, db
from clinic.models import BodyAreaConfig

DEFAULT_AREAS = ["Legs", "Arms", "Back", "Face", "Bikini"]


def seed_body_areas():
    """Add the default areas that are not in the catalog yet."""
    app = create_app()

    with app.app_context():
        existing = {area.area_name for area in BodyAreaConfig.query.all()}
        next_order = (db.session.query(db.func.max(BodyAreaConfig.sort_order)).scalar() or 0) + 1

        added = 0
        for name in DEFAULT_AREAS:
            if name in existing:
                print(f"⏭️  {name} already in catalog")
                continue
            db.session.add(BodyAreaConfig(area_name=name, is_active=True, sort_order=next_order))
            next_order += 1
            added += 1

        db.session.commit()
        print(f"✅ Added {added} body areas")


if __name__ == "__main__":
    seed_body_areas()

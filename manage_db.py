#!/usr/bin/env python3
"""
Database management script.

Usage:
    python manage_db.py init                          # Create tables
    python manage_db.py seed <draw.json> [name]       # Create a tournament and import a draw
"""
import json
import sys

from tabroom.app import create_app
from tabroom.errors import ScoringError
from tabroom.models import db


def init():
    """Create all tables."""
    print("Creating database tables...")
    app = create_app()
    with app.app_context():
        db.create_all()
    print("✓ Database initialized.")


def seed(path: str, name: str = 'NDL Tournament'):
    """Create a tournament and load a normalized draw file into it."""
    with open(path) as f:
        payload = json.load(f)

    app = create_app()
    with app.app_context():
        tournament = app.registry.create_tournament(name=name)
        try:
            summary = app.registry.import_draw(tournament, payload)
        except ScoringError as e:
            print(f"Error importing draw: {e.detail}")
            sys.exit(1)

        print(f"✓ Created tournament {tournament.tournament_id} ({name})")
        print(f"✓ Imported {summary['debates']} debates for round {summary['round']}, "
              f"{summary['assignments']} judge assignments.")


if __name__ == '__main__':
    command = sys.argv[1] if len(sys.argv) > 1 else 'init'

    if command == 'init':
        init()
    elif command == 'seed' and len(sys.argv) > 2:
        seed(*sys.argv[2:4])
    else:
        print(__doc__)
        sys.exit(1)

"""
MotoresRD - Database Seed Scripts.

- data/: Seed data definitions (constants only)
- seeders/: Reusable seeding logic

Run all seeds:
    python -m database.seeds.run_all_seeds

Create the first admin:
    python -m database.seeds.create_admin_user
"""

from database.seeds.run_all_seeds import run_all_seeds, seed_catalog

__all__ = [
    "run_all_seeds",
    "seed_catalog",
]

"""
MotoresRD Seeders Module.

Reusable seeding logic separated from data definitions.
"""

from database.seeds.seeders.base import BaseSeeder
from database.seeds.seeders.catalog import CatalogSeeder

__all__ = [
    "BaseSeeder",
    "CatalogSeeder",
]

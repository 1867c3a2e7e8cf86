"""Catalog seeding from YAML files."""

from .loader import CatalogSeeder, SeedError, read_seed_file, seed_from_file
from .models import CatalogSeed

__all__ = ["CatalogSeed", "CatalogSeeder", "SeedError", "read_seed_file", "seed_from_file"]

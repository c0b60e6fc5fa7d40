"""
Seed data: entity models, deterministic randomness and the seed generator
"""
from .models import Brand, City, Customer, Item, RawOrder, SeedDataset, Store, load_seed_dataset
from .random import SeededRandom, derive_seed, hash_string

__all__ = [
    "Brand",
    "City",
    "Customer",
    "Item",
    "RawOrder",
    "SeedDataset",
    "Store",
    "load_seed_dataset",
    "SeededRandom",
    "derive_seed",
    "hash_string",
]

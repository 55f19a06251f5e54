from .repository import InMemoryProductCatalog, InMemoryResidentRepository
from .seed import LIQUID_CALCIUM, seed_demo_ward

__all__ = [
    "InMemoryProductCatalog",
    "InMemoryResidentRepository",
    "LIQUID_CALCIUM",
    "seed_demo_ward",
]

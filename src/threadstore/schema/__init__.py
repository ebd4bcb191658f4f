"""
Schema seeding - one-shot registration of document shapes.

Not used by RecordStore at runtime.
"""

from threadstore.schema.astronauts import ASTRONAUT_SCHEMA, astronauts_schema, seed_model
from threadstore.schema.manager import SchemaManager

__all__ = [
    "ASTRONAUT_SCHEMA",
    "SchemaManager",
    "astronauts_schema",
    "seed_model",
]

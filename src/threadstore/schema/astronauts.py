"""
Astronaut document shapes.

- Astronaut: a single record (name, missions)
- Astronauts: a wrapper holding references to Astronaut streams
"""

from typing import Any

from threadstore.schema.manager import SchemaManager

ASTRONAUT_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Astronaut",
    "type": "object",
    "properties": {
        "name": {
            "type": ["string", "null"],
            "title": "name",
            "maxLength": 100,
        },
        "missions": {
            "type": ["integer", "null"],
            "title": "missions",
        },
    },
}

PLACEHOLDER_ASTRONAUT = {"name": "Byron", "missions": 1}


def astronauts_schema(astronaut_schema_url: str) -> dict[str, Any]:
    """Collection-of-references schema pointing at the Astronaut schema."""
    return {
        "$schema": "http://json-schema.org/draft-07/schema#",
        "title": "Astronauts",
        "type": "object",
        "properties": {
            "astronauts": {
                "type": ["array", "null"],
                "title": "astronauts",
                "items": {
                    "type": "object",
                    "title": "AstronautItem",
                    "properties": {
                        "id": {
                            "$comment": f"cip88:ref:{astronaut_schema_url}",
                            "type": ["string", "null"],
                            "pattern": "^ceramic://.+(\\?version=.+)?",
                            "maxLength": 150,
                        },
                        "name": {
                            "type": ["string", "null"],
                            "title": "name",
                            "maxLength": 100,
                        },
                    },
                },
            },
        },
    }


def seed_model(manager: SchemaManager | None = None) -> SchemaManager:
    """Register both schemas and the placeholder tile."""
    manager = manager or SchemaManager()

    astronaut_id = manager.create_schema("Astronaut", ASTRONAUT_SCHEMA)
    astronaut_url = manager.get_schema_url(astronaut_id)
    manager.create_schema("Astronauts", astronauts_schema(astronaut_url))

    manager.create_tile("astronaut", PLACEHOLDER_ASTRONAUT, astronaut_url)
    return manager

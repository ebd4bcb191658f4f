"""Tests for schema seeding."""

import json

import pytest
from jsonschema import SchemaError, ValidationError

from threadstore.schema import ASTRONAUT_SCHEMA, SchemaManager, seed_model


class TestSchemaManager:
    """Tests for SchemaManager."""

    def test_create_schema_is_content_addressed(self):
        """Test that the same schema always gets the same stream id."""
        first = SchemaManager().create_schema("Astronaut", ASTRONAUT_SCHEMA)
        second = SchemaManager().create_schema("Astronaut", dict(ASTRONAUT_SCHEMA))

        assert first == second
        assert first.startswith("k")

    def test_schema_url(self):
        """Test stream URLs for known and unknown schemas."""
        manager = SchemaManager()
        stream_id = manager.create_schema("Astronaut", ASTRONAUT_SCHEMA)

        assert manager.get_schema_url(stream_id) == f"ceramic://{stream_id}"
        assert manager.get_schema_url("kunknown") is None

    def test_invalid_schema_rejected(self):
        """Test that a malformed schema is refused."""
        with pytest.raises(SchemaError):
            SchemaManager().create_schema("Broken", {"type": "not-a-type"})

    def test_tile_validated_against_schema(self):
        """Test that tiles must conform to their schema."""
        manager = SchemaManager()
        url = manager.get_schema_url(manager.create_schema("Astronaut", ASTRONAUT_SCHEMA))

        manager.create_tile("ok", {"name": "Byron", "missions": 1}, url)
        with pytest.raises(ValidationError):
            manager.create_tile("bad", {"name": "Byron", "missions": "one"}, url)

    def test_nullable_fields_accept_null(self):
        """Test that nullable fields are expressed as draft-07 type unions."""
        manager = SchemaManager()
        url = manager.get_schema_url(manager.create_schema("Astronaut", ASTRONAUT_SCHEMA))

        manager.create_tile("blank", {"name": None, "missions": None}, url)
        assert "nullable" not in json.dumps(ASTRONAUT_SCHEMA)


class TestSeedModel:
    """Tests for the astronaut seed."""

    def test_seed_registers_both_schemas_and_tile(self):
        """Test the manifest contents."""
        manifest = seed_model().to_json()

        assert set(manifest["schemas"]) == {"Astronaut", "Astronauts"}
        assert manifest["definitions"] == {}
        assert manifest["tiles"]["astronaut"]["schema"] == (
            "ceramic://" + manifest["schemas"]["Astronaut"][0]
        )

    def test_astronauts_references_astronaut(self):
        """Test that list items point at the Astronaut schema."""
        manager = seed_model()
        astronaut_url = manager.get_schema_url(manager.to_json()["schemas"]["Astronaut"][0])
        astronauts_id = manager.to_json()["schemas"]["Astronauts"][0]
        schema = manager._schema_docs[astronauts_id]

        item_id = schema["properties"]["astronauts"]["items"]["properties"]["id"]
        assert item_id["$comment"] == f"cip88:ref:{astronaut_url}"

    def test_seed_is_repeatable(self):
        """Test that two seeds produce the same manifest."""
        assert seed_model().to_json() == seed_model().to_json()

    def test_write_manifest(self, tmp_path):
        """Test writing the manifest to disk."""
        path = seed_model().write(tmp_path / "scripts" / "model.json")

        data = json.loads(path.read_text())
        assert "Astronaut" in data["schemas"]

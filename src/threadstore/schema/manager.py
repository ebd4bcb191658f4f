"""
Schema manager - register document shapes and write a reusable manifest.

Schemas and tiles are identified by stream ids derived from their content,
so re-running a seed over the same definitions yields the same manifest.
Nothing is published to a network node; the manifest is the output.
"""

import base64
import hashlib
import json
from pathlib import Path
from typing import Any

from jsonschema import Draft7Validator

from threadstore.core.config import get_logger

logger = get_logger("schema.manager")

STREAM_URL_PREFIX = "ceramic://"


def stream_id_for(kind: str, payload: dict[str, Any]) -> str:
    """Content-derived stream id: ``k`` + base32(sha256(kind, canonical JSON))."""
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    digest = hashlib.sha256(f"{kind}:{canonical}".encode()).digest()
    return "k" + base64.b32encode(digest).decode("ascii").rstrip("=").lower()


class SchemaManager:
    """
    Registry of named schemas and tiles.

    Manifest layout::

        {
          "schemas":     {name: [stream_id]},
          "definitions": {},
          "tiles":       {alias: {"id": stream_id, "schema": schema_url}}
        }
    """

    def __init__(self):
        self._schemas: dict[str, str] = {}
        self._schema_docs: dict[str, dict[str, Any]] = {}
        self._tiles: dict[str, dict[str, Any]] = {}

    def create_schema(self, name: str, schema: dict[str, Any]) -> str:
        """Register a draft-07 schema under ``name`` and return its stream id."""
        Draft7Validator.check_schema(schema)
        stream_id = stream_id_for("schema", schema)
        self._schemas[name] = stream_id
        self._schema_docs[stream_id] = schema
        logger.info(f"Registered schema {name} as {stream_id}")
        return stream_id

    def get_schema_url(self, stream_id: str) -> str | None:
        if stream_id not in self._schema_docs:
            return None
        return f"{STREAM_URL_PREFIX}{stream_id}"

    def create_tile(
        self,
        alias: str,
        content: dict[str, Any],
        schema_url: str,
    ) -> str:
        """
        Create a tile under ``alias`` after validating it against ``schema_url``.

        Raises jsonschema.ValidationError if the content does not conform, and
        KeyError if the schema was never registered here.
        """
        stream_id = schema_url.removeprefix(STREAM_URL_PREFIX)
        schema = self._schema_docs[stream_id]
        Draft7Validator(schema).validate(content)

        tile_id = stream_id_for("tile", {"schema": schema_url, "content": content})
        self._tiles[alias] = {"id": tile_id, "schema": schema_url, "content": content}
        logger.info(f"Created tile {alias} as {tile_id}")
        return tile_id

    def to_json(self) -> dict[str, Any]:
        return {
            "schemas": {name: [sid] for name, sid in self._schemas.items()},
            "definitions": {},
            "tiles": {
                alias: {"id": tile["id"], "schema": tile["schema"]}
                for alias, tile in self._tiles.items()
            },
        }

    def write(self, path: Path) -> Path:
        """Write the manifest as JSON."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_json(), indent=2), encoding="utf-8")
        logger.info(f"Encoded model written to {path}")
        return path

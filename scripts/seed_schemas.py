#!/usr/bin/env python3
"""
Register the astronaut document shapes and write the schema manifest.

Creates:
- Astronaut schema (name, missions)
- Astronauts schema (list of references to Astronaut streams)
- A placeholder "astronaut" tile

Run once, then reuse the manifest:
    python scripts/seed_schemas.py [output-path]
"""

import sys
from pathlib import Path

from threadstore.core.config import settings, setup_logging
from threadstore.schema import seed_model


def main() -> None:
    """Main entry point."""
    setup_logging()
    output = Path(sys.argv[1]) if len(sys.argv) > 1 else settings.schema_manifest_path

    manager = seed_model()
    for name, ids in manager.to_json()["schemas"].items():
        print(f"  {name}: {ids[0]}")

    manager.write(output)
    print(f"\n✅ Encoded model written to {output}")


if __name__ == "__main__":
    main()

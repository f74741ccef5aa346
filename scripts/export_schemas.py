"""Export JSON schemas for the parse, match and playlist models."""

import json
from pathlib import Path

from orderflow.app.models import MatchResult, ParsedService, PlaylistItem


def main() -> None:
    """Export schemas to docs/schemas/."""
    schemas_dir = Path("docs/schemas")
    schemas_dir.mkdir(parents=True, exist_ok=True)

    for model in (ParsedService, MatchResult, PlaylistItem):
        path = schemas_dir / f"{model.__name__}.schema.json"
        with open(path, "w") as f:
            json.dump(model.model_json_schema(), f, indent=2)
        print(f"Exported {model.__name__} schema to {path}")


if __name__ == "__main__":
    main()

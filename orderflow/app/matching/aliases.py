"""Persistent song aliases: document title -> library presentation.

Operators teach the matcher once ("Blessed Be Your Name" is filed as
"Blessed Be Your Name - Redman") and later runs resolve it at full confidence.
Stored as JSON keyed by normalized title.
"""

import json
import logging
from pathlib import Path

from pydantic import BaseModel, ValidationError

from orderflow.app.text.normalize import normalize_title

logger = logging.getLogger(__name__)


class SongAlias(BaseModel):
    """Target of an alias."""

    id: str
    name: str
    original_title: str | None = None


class AliasStore:
    """JSON-file backed alias map."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict[str, SongAlias]:
        """Load all aliases; a missing or unreadable file yields an empty map."""
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return {key: SongAlias.model_validate(value) for key, value in raw.items()}
        except (OSError, ValueError, AttributeError, ValidationError) as e:
            logger.warning(
                "Ignoring unreadable alias store",
                extra={"structured": {"path": str(self._path), "error": type(e).__name__}},
            )
            return {}

    def save(self, aliases: dict[str, SongAlias]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = {key: alias.model_dump(exclude_none=True) for key, alias in aliases.items()}
        self._path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")

    def get(self, title: str) -> SongAlias | None:
        return self.load().get(normalize_title(title))

    def set(self, title: str, content_id: str, name: str) -> SongAlias:
        """Add or replace the alias for ``title``."""
        aliases = self.load()
        alias = SongAlias(id=content_id, name=name, original_title=title)
        aliases[normalize_title(title)] = alias
        self.save(aliases)
        logger.info(
            "Saved song alias",
            extra={"structured": {"title": title, "content_id": content_id}},
        )
        return alias

    def remove(self, title: str) -> bool:
        aliases = self.load()
        key = normalize_title(title)
        if key not in aliases:
            return False
        del aliases[key]
        self.save(aliases)
        return True

    def as_mappings(self) -> dict[str, str]:
        """Normalized title -> content id, the shape the matcher consumes."""
        return {key: alias.id for key, alias in self.load().items()}

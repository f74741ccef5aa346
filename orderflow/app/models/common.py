"""Common types and enums shared across all models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class SectionType(str, Enum):
    """Kind of entry extracted from a service order."""

    song = "song"
    video = "video"
    bible_verse = "bible-verse"
    heading = "heading"


class ServiceSlot(str, Enum):
    """Logical block of the service an entry belongs to."""

    praise1 = "praise1"
    praise2 = "praise2"
    praise3 = "praise3"
    kids = "kids"
    reading = "reading"
    none = "none"


class PoolKey(str, Enum):
    """Named candidate pool, one per content library role."""

    worship = "worship"
    kids = "kids"
    service_content = "service_content"


class MatchStrategy(str, Enum):
    """How a result was matched (discriminates song vs scripture matching)."""

    title = "title"
    reference = "reference"


class Provenance(BaseModel):
    """Provenance metadata for data fetched from ProPresenter."""

    source: str  # Call identifier (e.g., "propresenter.playlist")
    source_url: str | None = None
    fetched_at: datetime

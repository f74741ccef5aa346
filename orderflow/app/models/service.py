"""Service order domain models."""

from pydantic import BaseModel, ConfigDict, Field

from orderflow.app.models.common import SectionType, ServiceSlot


class ServiceSection(BaseModel):
    """One logical entry extracted from a service order document.

    Immutable once parsed; the matcher only reads it.
    """

    model_config = ConfigDict(frozen=True)

    type: SectionType
    title: str
    position: int = Field(..., ge=0)  # 0-based order of appearance
    is_kids_video: bool = False
    slot: ServiceSlot = ServiceSlot.none
    special_service_type: str | None = None
    leader: str | None = None  # e.g. "Praise Team"


class ParsedService(BaseModel):
    """Segmenter output for one document."""

    sections: list[ServiceSection]
    special_service_type: str | None = None
    date: str | None = None  # e.g. "1st February 2026"
    slot_markers_seen: int = 0

    @property
    def songs(self) -> list[ServiceSection]:
        return [s for s in self.sections if s.type in (SectionType.song, SectionType.video)]

    @property
    def verses(self) -> list[ServiceSection]:
        return [s for s in self.sections if s.type == SectionType.bible_verse]

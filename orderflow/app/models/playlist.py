"""ProPresenter playlist models (network API v1 wire format)."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

HEADER = "header"
PRESENTATION = "presentation"


class ItemId(BaseModel):
    """Playlist item identity.

    For presentation leaves ``uuid`` is the content identifier ProPresenter
    validates on write.
    """

    name: str = ""
    index: int = 0
    uuid: str = ""


class PresentationInfo(BaseModel):
    """Content reference of a presentation leaf."""

    presentation_uuid: str = ""
    arrangement_name: str = ""
    arrangement_uuid: str = ""


class PlaylistItem(BaseModel):
    """A header or a leaf of a playlist, as read from and written to ProPresenter.

    Unknown fields from the read side are tolerated but never written back;
    see ``orderflow.app.reconcile.reconciler.field_clean``.
    """

    model_config = ConfigDict(extra="allow")

    id: ItemId = Field(default_factory=ItemId)
    type: str
    is_hidden: bool = False
    is_pco: bool = False
    header_color: dict[str, Any] | None = None
    presentation_info: PresentationInfo | None = None
    duration: Any | None = None
    destination: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _lift_flat_name(cls, data: Any) -> Any:
        # Some ProPresenter builds return {name, uuid} at the top level
        if isinstance(data, dict) and "id" not in data and ("name" in data or "uuid" in data):
            data = dict(data)
            data["id"] = {"name": data.get("name") or "", "uuid": data.get("uuid") or ""}
        return data

    @property
    def is_header(self) -> bool:
        return self.type == HEADER

    @property
    def is_presentation(self) -> bool:
        return self.type == PRESENTATION

    @property
    def content_id(self) -> str:
        """Content identifier referenced by a presentation leaf ("" if none)."""
        if self.presentation_info is None:
            return ""
        return self.presentation_info.presentation_uuid

    def to_wire(self) -> dict[str, Any]:
        """Serialize for the PUT body."""
        return self.model_dump(mode="json", exclude_none=True)


class LeafDraft(BaseModel):
    """A replacement leaf queued for a slot, before it is minted into the playlist."""

    content_id: str = Field(..., min_length=1)
    name: str
    variant_name: str = ""
    variant_id: str = ""
    duration: Any | None = None


class LibraryInfo(BaseModel):
    """A ProPresenter library (content pool source)."""

    id: str
    name: str

"""Playlist reconciler - patch matched content into an existing playlist.

Walks the current items in order. A header that maps to a slot with queued
replacements is followed by freshly minted leaves and its old leaves are
dropped up to the next header. Every other header and leaf passes through.
The result is one complete array for a single whole-playlist replace call.

Write contract (not documented by ProPresenter, found the hard way): every
presentation leaf must carry a non-empty ``id.uuid`` or the whole PUT is
rejected with a generic error. ``field_clean`` defaults the id from the
content reference and ``ensure_content_ids`` checks it at the output boundary.
"""

from collections.abc import Mapping, Sequence

from orderflow.app.errors import EmptyContentIdError
from orderflow.app.models.common import MatchStrategy, ServiceSlot
from orderflow.app.models.matching import MatchResult
from orderflow.app.models.playlist import (
    HEADER,
    PRESENTATION,
    ItemId,
    LeafDraft,
    PlaylistItem,
    PresentationInfo,
)
from orderflow.app.text.normalize import normalize

DEFAULT_DESTINATION = "presentation"

DEFAULT_HEADER_TO_SLOT: dict[str, ServiceSlot] = {
    "praise 1": ServiceSlot.praise1,
    "praise1": ServiceSlot.praise1,
    "praise 2": ServiceSlot.praise2,
    "praise2": ServiceSlot.praise2,
    "praise 3": ServiceSlot.praise3,
    "praise3": ServiceSlot.praise3,
    "kids talk": ServiceSlot.kids,
    "kids": ServiceSlot.kids,
    "kids song": ServiceSlot.kids,
    "kids video": ServiceSlot.kids,
    "reading": ServiceSlot.reading,
    "bible": ServiceSlot.reading,
    "bible reading": ServiceSlot.reading,
}


def header_slot(name: str, header_to_slot: Mapping[str, ServiceSlot]) -> ServiceSlot | None:
    """Slot a header stands for, compared on normalized names."""
    lookup = {normalize(key): slot for key, slot in header_to_slot.items()}
    return lookup.get(normalize(name))


def mint_leaf(draft: LeafDraft, index: int) -> PlaylistItem:
    """Build a new presentation leaf whose id is its content id."""
    return PlaylistItem(
        id=ItemId(name=draft.name, index=index, uuid=draft.content_id),
        type=PRESENTATION,
        presentation_info=PresentationInfo(
            presentation_uuid=draft.content_id,
            arrangement_name=draft.variant_name,
            arrangement_uuid=draft.variant_id,
        ),
        duration=draft.duration,
        destination=DEFAULT_DESTINATION,
    )


def clean_item(item: PlaylistItem, index: int, *, reset_ids: bool = False) -> PlaylistItem:
    """Keep only the fields ProPresenter accepts on write.

    ``index`` is rewritten to the item's position. With ``reset_ids`` headers
    lose their id (ProPresenter mints one) and leaves take their content id,
    which is what copying a template needs.
    """
    name = item.id.name or "Untitled"
    flags = {"is_hidden": item.is_hidden, "is_pco": item.is_pco}

    if item.is_header:
        return PlaylistItem(
            id=ItemId(name=name, index=index, uuid="" if reset_ids else item.id.uuid),
            type=HEADER,
            header_color=item.header_color,
            destination=item.destination,
            **flags,
        )

    if item.is_presentation:
        uuid = item.content_id if reset_ids else (item.id.uuid or item.content_id)
        info = item.presentation_info
        return PlaylistItem(
            id=ItemId(name=name, index=index, uuid=uuid),
            type=PRESENTATION,
            presentation_info=(
                PresentationInfo(
                    presentation_uuid=info.presentation_uuid,
                    arrangement_name=info.arrangement_name,
                    arrangement_uuid=info.arrangement_uuid,
                )
                if info is not None
                else None
            ),
            duration=item.duration or None,
            destination=item.destination,
            **flags,
        )

    # Media, cues and placeholders keep identity and flags only
    return PlaylistItem(
        id=ItemId(name=name, index=index, uuid=item.id.uuid),
        type=item.type,
        destination=item.destination,
        **flags,
    )


def field_clean(items: Sequence[PlaylistItem], *, reset_ids: bool = False) -> list[PlaylistItem]:
    """Clean every item and renumber indices sequentially."""
    return [clean_item(item, index, reset_ids=reset_ids) for index, item in enumerate(items)]


def ensure_content_ids(items: Sequence[PlaylistItem]) -> Sequence[PlaylistItem]:
    """Raise EmptyContentIdError if any presentation leaf lacks ``id.uuid``."""
    for index, item in enumerate(items):
        if item.is_presentation and not item.id.uuid:
            raise EmptyContentIdError(index, item.id.name)
    return items


def reconcile_with_placement(
    current_items: Sequence[PlaylistItem],
    replacements_by_slot: Mapping[ServiceSlot, Sequence[LeafDraft]],
    header_to_slot: Mapping[str, ServiceSlot] | None = None,
) -> tuple[list[PlaylistItem], set[ServiceSlot]]:
    """Like ``reconcile``, also returning the slots whose drafts a header consumed.

    A slot with drafts but no matching header in ``current_items`` is missing
    from the set, and its drafts are not in the output.
    """
    header_to_slot = DEFAULT_HEADER_TO_SLOT if header_to_slot is None else header_to_slot
    queued = {ServiceSlot(slot): list(drafts) for slot, drafts in replacements_by_slot.items()}

    emitted: list[PlaylistItem] = []
    placed: set[ServiceSlot] = set()
    skip_mode = False

    for item in current_items:
        if item.is_header:
            slot = header_slot(item.id.name, header_to_slot)
            drafts = queued.pop(slot, []) if slot is not None else []
            emitted.append(item)
            if slot is not None and drafts:
                for draft in drafts:
                    emitted.append(mint_leaf(draft, len(emitted)))
                placed.add(slot)
                skip_mode = True
            else:
                skip_mode = False
            continue

        if skip_mode:
            # Old content of the slot, superseded by the minted leaves
            continue
        emitted.append(item)

    result = field_clean(emitted)
    ensure_content_ids(result)
    return result, placed


def reconcile(
    current_items: Sequence[PlaylistItem],
    replacements_by_slot: Mapping[ServiceSlot, Sequence[LeafDraft]],
    header_to_slot: Mapping[str, ServiceSlot] | None = None,
) -> list[PlaylistItem]:
    """Replace the leaves of slot headers that have queued drafts; keep the rest.

    Drafts for a slot are consumed by the first header mapping to it, so two
    headers sharing a slot do not both receive the same songs.

    Returns the cleaned array to submit. With no replacements this is exactly
    ``field_clean(current_items)``.
    """
    items, _ = reconcile_with_placement(current_items, replacements_by_slot, header_to_slot)
    return items


def clone_items(items: Sequence[PlaylistItem]) -> list[PlaylistItem]:
    """Copy of a template's items for a new playlist, write-contract safe."""
    cloned = field_clean(items, reset_ids=True)
    ensure_content_ids(cloned)
    return cloned


def draft_from_result(result: MatchResult) -> LeafDraft | None:
    """LeafDraft for the result's selected presentation, if any."""
    if result.selected is None:
        return None
    return LeafDraft(content_id=result.selected.id, name=result.selected.display_name)


def group_selections(results: Sequence[MatchResult]) -> dict[ServiceSlot, list[LeafDraft]]:
    """Bucket selected results by slot in document order.

    Scripture always lands in ``reading``; songs seen before any slot marker
    go to ``praise1``.
    """
    buckets: dict[ServiceSlot, list[LeafDraft]] = {}
    for result in sorted(results, key=lambda r: r.position):
        draft = draft_from_result(result)
        if draft is None:
            continue
        if result.strategy == MatchStrategy.reference:
            slot = ServiceSlot.reading
        elif result.slot == ServiceSlot.none:
            slot = ServiceSlot.praise1
        else:
            slot = result.slot
        buckets.setdefault(slot, []).append(draft)
    return buckets

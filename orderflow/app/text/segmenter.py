"""Service order segmenter - raw extracted text to ordered service sections.

The scan is a left fold over the document lines. The accumulator carries the
current slot (moved forward by slot markers such as "Call to Worship") and the
document-wide special service type, so the state machine can be driven and
tested one line at a time.

Only three kinds of lines matter:
- ``PRAISE: <title>`` emits a song, or a video when ``(Video)`` is present
- ``BIBLE READING: <reference>`` emits a scripture reading
- slot markers move ``current_slot`` and emit nothing

Anything else is ignored. Layouts vary week to week, so unrecognised content
degrades to fewer sections instead of an error.
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass, replace
from functools import reduce
from typing import NamedTuple

from orderflow.app.models.common import SectionType, ServiceSlot
from orderflow.app.models.service import ParsedService, ServiceSection

# Ordered: first matching marker wins
SLOT_MARKERS: tuple[tuple[re.Pattern[str], ServiceSlot], ...] = (
    (re.compile(r"call to worship|opening prayer", re.IGNORECASE), ServiceSlot.praise1),
    (re.compile(r"pray(?:ing|ers) for others", re.IGNORECASE), ServiceSlot.praise2),
    (
        re.compile(
            r"prayerful reflection|reflection and response|time of reflection", re.IGNORECASE
        ),
        ServiceSlot.praise3,
    ),
)

SONG_ENTRY = re.compile(r"^praise\s*:\s*", re.IGNORECASE)
SCRIPTURE_ENTRY = re.compile(r"^bible\s+reading\s*:\s*", re.IGNORECASE)
VIDEO_MARKER = re.compile(r"\(\s*video\s*\)", re.IGNORECASE)
TRAILING_LEADER = re.compile(r"\s*\(([^()]+)\)\s*$")

TIME_PREFIX = re.compile(r"^\d{1,2}[:.]\d{2}\s*(?:am|pm)\s*:?\s*", re.IGNORECASE)  # "10:30am:"

METADATA_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\[.*\]$"),  # "[Live Streamed from Room 1]"
    re.compile(r"live streamed", re.IGNORECASE),
    re.compile(r"\broom 1\b", re.IGNORECASE),
    re.compile(r"\bleave for\b", re.IGNORECASE),
)

# Ordered: "good friday" must win over a later "easter" mention
SPECIAL_SERVICE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\bgood\s+friday\b", re.IGNORECASE), "good-friday"),
    (re.compile(r"\bremembrance\b", re.IGNORECASE), "remembrance"),
    (re.compile(r"\bnativity\b", re.IGNORECASE), "nativity"),
    (re.compile(r"\bcarols?\b", re.IGNORECASE), "carol"),
    (re.compile(r"\bchristmas\b", re.IGNORECASE), "christmas"),
    (re.compile(r"\beaster\b", re.IGNORECASE), "easter"),
    (re.compile(r"\bcommunion\b", re.IGNORECASE), "communion"),
)

KIDS_KEYWORDS = re.compile(
    r"\bkids?\b|\bchildren(?:'s)?\b|family slot|junior church|sunday school|\bkidz\b",
    re.IGNORECASE,
)

DATE_PATTERN = re.compile(r"(\d{1,2}(?:st|nd|rd|th)?\s+[A-Za-z]+\s+\d{4})")

DEFAULT_KIDS_LOOKAHEAD = 2


class KidsClassification(NamedTuple):
    """Result of the kids-video heuristic."""

    is_kids: bool
    matched_on: str | None = None  # the line that triggered the classification


@dataclass(frozen=True)
class SegmentState:
    """Fold accumulator."""

    current_slot: ServiceSlot = ServiceSlot.none
    special_service_type: str | None = None
    sections: tuple[ServiceSection, ...] = ()
    slot_markers_seen: int = 0


def prepare_lines(raw_text: str) -> list[str]:
    """Split extracted text into stripped, non-empty lines without leading times."""
    normalized = raw_text.replace("\r\n", "\n").replace("\r", "\n")
    lines = (TIME_PREFIX.sub("", line.strip()).strip() for line in normalized.split("\n"))
    return [line for line in lines if line]


def is_metadata_line(line: str) -> bool:
    """Times, bracketed notes and streaming/room notes carry no service content."""
    return any(p.search(line) for p in METADATA_PATTERNS)


def is_entry_line(line: str) -> bool:
    return bool(SONG_ENTRY.match(line) or SCRIPTURE_ENTRY.match(line))


def match_slot_marker(line: str) -> ServiceSlot | None:
    for pattern, slot in SLOT_MARKERS:
        if pattern.search(line):
            return slot
    return None


def detect_special_service(line: str) -> str | None:
    for pattern, label in SPECIAL_SERVICE_PATTERNS:
        if pattern.search(line):
            return label
    return None


def lookahead_window(lines: Sequence[str], index: int, width: int) -> list[str]:
    """The entry line plus up to ``width`` following lines, stopping at the next entry."""
    window = [lines[index]]
    for line in lines[index + 1 : index + 1 + max(width, 0)]:
        if is_entry_line(line):
            break
        window.append(line)
    return window


def classify_kids_video(window: Sequence[str]) -> KidsClassification:
    """Decide whether a video entry is for the children's slot.

    ``window[0]`` is the entry line itself; the rest is bounded lookahead
    context. Pure: the window width is the caller's choice.
    """
    for line in window:
        if KIDS_KEYWORDS.search(line):
            return KidsClassification(True, line)
    return KidsClassification(False)


def extract_date(header_line: str) -> str | None:
    """Pull "1st February 2026" out of "SUNDAY MORNING, 1st February 2026 - 11am"."""
    match = DATE_PATTERN.search(header_line)
    return match.group(1) if match else None


def _split_leader(content: str) -> tuple[str, str | None]:
    match = TRAILING_LEADER.search(content)
    if not match:
        return content.strip(), None
    return content[: match.start()].strip(), match.group(1).strip()


def _song_section(
    line: str,
    *,
    position: int,
    current_slot: ServiceSlot,
    window: Sequence[str],
) -> ServiceSection | None:
    content = SONG_ENTRY.sub("", line, count=1)
    is_video = VIDEO_MARKER.search(content) is not None
    content = " ".join(VIDEO_MARKER.sub(" ", content).split())
    title, leader = _split_leader(content)
    if not title:
        return None

    if not is_video:
        return ServiceSection(
            type=SectionType.song,
            title=title,
            position=position,
            slot=current_slot,
            leader=leader,
        )

    kids = classify_kids_video(window)
    return ServiceSection(
        type=SectionType.video,
        title=title,
        position=position,
        is_kids_video=kids.is_kids,
        slot=ServiceSlot.kids if kids.is_kids else current_slot,
        leader=leader,
    )


def _scripture_section(line: str, *, position: int) -> ServiceSection | None:
    content = SCRIPTURE_ENTRY.sub("", line, count=1)
    reference, leader = _split_leader(content)
    if not reference:
        return None
    return ServiceSection(
        type=SectionType.bible_verse,
        title=reference,
        position=position,
        slot=ServiceSlot.reading,
        leader=leader,
    )


def advance(
    state: SegmentState,
    lines: Sequence[str],
    index: int,
    *,
    kids_lookahead: int = DEFAULT_KIDS_LOOKAHEAD,
) -> SegmentState:
    """Fold step: consume ``lines[index]`` and return the next state."""
    line = lines[index]

    # Song titles and leaders ("Amazing Grace (Carol)") do not describe the service
    if state.special_service_type is None and not is_entry_line(line):
        special = detect_special_service(line)
        if special is not None:
            state = replace(state, special_service_type=special)

    if is_metadata_line(line):
        return state

    position = len(state.sections)

    if SONG_ENTRY.match(line):
        section = _song_section(
            line,
            position=position,
            current_slot=state.current_slot,
            window=lookahead_window(lines, index, kids_lookahead),
        )
        if section is None:
            return state
        return replace(state, sections=state.sections + (section,))

    if SCRIPTURE_ENTRY.match(line):
        section = _scripture_section(line, position=position)
        if section is None:
            return state
        return replace(state, sections=state.sections + (section,))

    slot = match_slot_marker(line)
    if slot is not None:
        return replace(
            state, current_slot=slot, slot_markers_seen=state.slot_markers_seen + 1
        )

    return state


def segment(raw_text: str, *, kids_lookahead: int = DEFAULT_KIDS_LOOKAHEAD) -> ParsedService:
    """Segment extracted document text into ordered service sections.

    Never raises for content reasons: an empty or unrecognised document yields
    an empty section list.
    """
    lines = prepare_lines(raw_text)
    if not lines:
        return ParsedService(sections=[])

    final = reduce(
        lambda state, i: advance(state, lines, i, kids_lookahead=kids_lookahead),
        range(len(lines)),
        SegmentState(),
    )

    # The calendar tag may be detected after earlier sections were emitted
    special = final.special_service_type
    sections = [
        s.model_copy(update={"special_service_type": special}) if special else s
        for s in final.sections
    ]

    return ParsedService(
        sections=sections,
        special_service_type=special,
        date=extract_date(lines[0]),
        slot_markers_seen=final.slot_markers_seen,
    )

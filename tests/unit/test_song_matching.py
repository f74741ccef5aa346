"""Tests for title matching of songs and videos."""

import pytest

from orderflow.app.matching.songs import (
    MatchingConfig,
    build_result,
    calculate_statistics,
    match_section,
    match_sections,
    score_candidates,
    select_pool,
    similarity,
)
from orderflow.app.models.common import PoolKey, SectionType, ServiceSlot
from orderflow.app.models.matching import CandidatePresentation, MatchCandidate
from orderflow.app.models.service import ServiceSection
from orderflow.app.text.normalize import normalize_title

CONFIG = MatchingConfig()


def make_pool(*names: str, pool_id: str = "lib") -> list[CandidatePresentation]:
    return [
        CandidatePresentation(id=f"{pool_id}:{i}", display_name=name, pool_id=pool_id)
        for i, name in enumerate(names)
    ]


def song(title: str, *, slot: ServiceSlot = ServiceSlot.praise1, position: int = 0) -> ServiceSection:
    return ServiceSection(type=SectionType.song, title=title, position=position, slot=slot)


def video(
    title: str,
    *,
    kids: bool = False,
    special: str | None = None,
    slot: ServiceSlot = ServiceSlot.praise2,
) -> ServiceSection:
    return ServiceSection(
        type=SectionType.video,
        title=title,
        position=0,
        is_kids_video=kids,
        slot=ServiceSlot.kids if kids else slot,
        special_service_type=special,
    )


class TestSimilarity:
    def test_identical_is_one(self) -> None:
        assert similarity("in christ alone", "in christ alone") == 1.0

    def test_empty_is_zero(self) -> None:
        assert similarity("", "anything") == 0.0

    def test_symmetric(self) -> None:
        a, b = "great is thy faithfulness", "great is your faithfulness"
        assert similarity(a, b, prefix_floor=0.92) == similarity(b, a, prefix_floor=0.92)

    def test_word_prefix_is_raised_to_floor(self) -> None:
        a, b = "faithful one", "faithful one so unchanging"
        assert similarity(a, b) < 0.92
        assert similarity(a, b, prefix_floor=0.92) >= 0.92
        assert similarity(b, a, prefix_floor=0.92) >= 0.92

    def test_short_prefix_is_not_boosted(self) -> None:
        assert similarity("god", "god of wonders", prefix_floor=0.92) < 0.92

    def test_partial_word_is_not_a_prefix(self) -> None:
        assert similarity("holy", "holyness of god", prefix_floor=0.92) < 0.92


class TestScoring:
    @pytest.mark.parametrize(
        "title",
        ["Blessed Be Your Name", "In Christ Alone", "10,000 Reasons", "It's Your Blood"],
    )
    def test_identical_title_scores_one_in_any_pool(self, title: str) -> None:
        pool = make_pool("Amazing Grace", title, "Be Thou My Vision")
        candidates = score_candidates(normalize_title(title), pool, CONFIG)
        assert candidates[0].confidence == 1.0
        assert candidates[0].presentation.display_name == title

    def test_candidates_below_recall_are_dropped(self) -> None:
        pool = make_pool("Amazing Grace", "Completely Different")
        candidates = score_candidates("Amazing Grace", pool, CONFIG)
        assert [c.presentation.display_name for c in candidates] == ["Amazing Grace"]

    def test_candidates_are_capped_and_ordered(self) -> None:
        pool = make_pool(*[f"Holy Spirit {n}" for n in (8, 3, 5, 1, 7, 2, 6, 4)])
        candidates = score_candidates("Holy Spirit", pool, CONFIG)
        assert len(candidates) == 5
        assert [c.presentation.display_name for c in candidates] == [
            f"Holy Spirit {n}" for n in range(1, 6)
        ]

    def test_ties_break_on_name_then_id(self) -> None:
        pool = [
            CandidatePresentation(id="z", display_name="Amazing Grace", pool_id="lib"),
            CandidatePresentation(id="a", display_name="Amazing Grace", pool_id="lib"),
        ]
        candidates = score_candidates("Amazing Grace", pool, CONFIG)
        assert [c.presentation.id for c in candidates] == ["a", "z"]


class TestBuildResult:
    def test_no_candidates_requires_review(self) -> None:
        result = build_result(song("Unknown"), [], auto_accept_threshold=0.85)
        assert result.requires_review
        assert result.best_match is None
        assert result.selected is None
        assert result.not_found

    def test_confident_match_is_selected(self) -> None:
        presentation = make_pool("Song")[0]
        result = build_result(
            song("Song"),
            [MatchCandidate(presentation=presentation, confidence=0.9)],
            auto_accept_threshold=0.85,
        )
        assert not result.requires_review
        assert result.selected == presentation

    def test_weak_match_waits_for_review(self) -> None:
        presentation = make_pool("Song")[0]
        result = build_result(
            song("Song"),
            [MatchCandidate(presentation=presentation, confidence=0.84)],
            auto_accept_threshold=0.85,
        )
        assert result.requires_review
        assert result.best_match is not None
        assert result.selected is None


class TestPoolRouting:
    def test_song_uses_worship(self) -> None:
        assert select_pool(song("A")) == PoolKey.worship

    def test_video_uses_service_content(self) -> None:
        assert select_pool(video("A")) == PoolKey.service_content

    def test_kids_video_uses_kids(self) -> None:
        assert select_pool(video("A", kids=True)) == PoolKey.kids

    def test_song_in_kids_slot_uses_kids(self) -> None:
        assert select_pool(song("A", slot=ServiceSlot.kids)) == PoolKey.kids


class TestMatchSection:
    def test_kids_miss_widens_to_all_pools(self) -> None:
        pools = {
            PoolKey.kids: make_pool("Other Kids Video", pool_id="kids"),
            PoolKey.worship: make_pool("Jesus Loves Me", pool_id="worship"),
        }
        result = match_section(video("Jesus Loves Me", kids=True), pools, CONFIG)
        assert result.pool == PoolKey.kids
        assert result.best_match is not None
        assert result.best_match.presentation.pool_id == "worship"
        assert result.selected is not None

    def test_kids_hit_is_not_widened(self) -> None:
        pools = {
            PoolKey.kids: make_pool("Jesus Loves Me", pool_id="kids"),
            PoolKey.worship: make_pool("Jesus Loves Me", pool_id="worship"),
        }
        result = match_section(video("Jesus Loves Me", kids=True), pools, CONFIG)
        assert [c.presentation.pool_id for c in result.candidates] == ["kids"]

    def test_special_service_video_falls_back_to_worship(self) -> None:
        pools = {
            PoolKey.service_content: make_pool("Notices Loop", pool_id="content"),
            PoolKey.worship: make_pool("Mary Did You Know", pool_id="worship"),
        }
        result = match_section(video("Mary Did You Know", special="christmas"), pools, CONFIG)
        assert result.pool == PoolKey.service_content
        assert result.selected is not None
        assert result.selected.pool_id == "worship"

    def test_regular_video_does_not_fall_back(self) -> None:
        pools = {
            PoolKey.service_content: make_pool("Notices Loop", pool_id="content"),
            PoolKey.worship: make_pool("Mary Did You Know", pool_id="worship"),
        }
        result = match_section(video("Mary Did You Know"), pools, CONFIG)
        assert result.not_found

    def test_alias_hit_is_full_confidence(self) -> None:
        pools = {PoolKey.worship: make_pool("Blessed Be Your Name - Redman", "Other")}
        aliases = {normalize_title("Blessed Be Your Name"): "lib:0"}
        result = match_section(song("Blessed Be Your Name"), pools, CONFIG, aliases)
        assert len(result.candidates) == 1
        assert result.best_match is not None
        assert result.best_match.confidence == 1.0
        assert not result.requires_review
        assert result.selected is not None and result.selected.id == "lib:0"

    def test_alias_outside_pool_is_ignored(self) -> None:
        pools = {PoolKey.worship: make_pool("Amazing Grace")}
        aliases = {normalize_title("Amazing Grace"): "gone"}
        result = match_section(song("Amazing Grace"), pools, CONFIG, aliases)
        assert result.selected is not None
        assert result.selected.id == "lib:0"

    def test_missing_pool_degrades_to_review(self) -> None:
        result = match_section(song("Amazing Grace"), {}, CONFIG)
        assert result.not_found
        assert result.requires_review


class TestMatchSections:
    def test_scripture_sections_are_skipped(self) -> None:
        sections = [
            song("Amazing Grace"),
            ServiceSection(type=SectionType.bible_verse, title="John 3:16", position=1),
        ]
        results = match_sections(sections, {PoolKey.worship: make_pool("Amazing Grace")})
        assert [r.source_title for r in results] == ["Amazing Grace"]

    def test_rescan_is_identical(self) -> None:
        sections = [song("Amazing Grace"), song("Holy Spirit", position=1)]
        pools = {PoolKey.worship: make_pool("Amazing Grace", "Holy Spirit 1", "Holy Spirit 2")}
        assert match_sections(sections, pools) == match_sections(sections, pools)

    def test_statistics(self) -> None:
        sections = [
            song("Amazing Grace", position=0),
            song("Amazing Grase", position=1),
            song("Nothing Like It", position=2),
        ]
        results = match_sections(sections, {PoolKey.worship: make_pool("Amazing Grace")})
        stats = calculate_statistics(results)
        assert stats.total == 3
        assert stats.auto_matched == 2
        assert stats.requires_review == 1
        assert stats.not_found == 1
        assert 0.0 < stats.average_confidence < 1.0

    def test_statistics_of_nothing(self) -> None:
        stats = calculate_statistics([])
        assert stats.total == 0
        assert stats.average_confidence == 0.0

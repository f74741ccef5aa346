"""Service pipeline - sequences segment -> match -> reconcile behind user-gated steps.

Each step is a pure function of the run's inputs plus state fetched from
ProPresenter at that moment, so any step can be repeated. Nothing reaches
ProPresenter before ``build``, which performs exactly one replace call.
"""

import asyncio
import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

from orderflow.app.adapters.propresenter import ProPresenterClient
from orderflow.app.config import Settings
from orderflow.app.errors import PipelineWarning, ReconcileRejectedError, SelectionError
from orderflow.app.matching.aliases import AliasStore
from orderflow.app.matching.fallback import attach_fallbacks, manual_fallback
from orderflow.app.matching.search import search_presentations
from orderflow.app.matching.songs import MatchingConfig, calculate_statistics, match_sections
from orderflow.app.matching.verses import match_verses
from orderflow.app.models.common import PoolKey
from orderflow.app.models.matching import CandidatePresentation, MatchResult
from orderflow.app.orchestration.runs import RunStore
from orderflow.app.orchestration.state import (
    BuildSummary,
    PipelineRun,
    SelectionKind,
)
from orderflow.app.reconcile.reconciler import (
    DEFAULT_HEADER_TO_SLOT,
    clone_items,
    group_selections,
    reconcile_with_placement,
)
from orderflow.app.text.normalize import normalize
from orderflow.app.text.segmenter import segment
from orderflow.app.utils.metrics import record_match_outcome, record_step

logger = logging.getLogger(__name__)


def _outcome(result: MatchResult) -> str:
    if result.not_found:
        return "not_found"
    return "review" if result.requires_review else "auto"


class ServicePipeline:
    """Step-gated workflow over one ProPresenter instance."""

    def __init__(
        self,
        client: ProPresenterClient,
        settings: Settings,
        *,
        aliases: AliasStore | None = None,
        store: RunStore | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.client = client
        self.settings = settings
        self.aliases = aliases
        self.store = store or RunStore()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._matching = MatchingConfig.from_settings(settings)
        # One writer per playlist within this process
        self._playlist_locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, playlist_id: str) -> asyncio.Lock:
        return self._playlist_locks.setdefault(playlist_id, asyncio.Lock())

    def _warn(self, run: PipelineRun, warning: PipelineWarning) -> None:
        run.warnings.append(warning)
        logger.warning(
            warning.message,
            extra={
                "structured": {
                    "run_id": str(run.run_id),
                    "kind": warning.kind,
                    "position": warning.position,
                }
            },
        )

    # Step 1: parse

    def create_run(self, raw_text: str) -> PipelineRun:
        run = self.store.create()
        return self.parse(run, raw_text)

    def parse(self, run: PipelineRun, raw_text: str) -> PipelineRun:
        """Segment the document; a re-parse discards every later step's output."""
        parsed = segment(raw_text, kids_lookahead=self.settings.kids_lookahead_lines)

        run.raw_text = raw_text
        run.parsed = parsed
        run.song_results = []
        run.verse_results = []
        run.statistics = None
        run.warnings = []
        run.manual_selections = {}
        run.last_write = None
        run.error = None

        if not parsed.sections:
            self._warn(
                run,
                PipelineWarning(
                    kind="parse_degraded", message="No songs or readings found in document"
                ),
            )
        else:
            if not parsed.songs:
                self._warn(
                    run,
                    PipelineWarning(kind="parse_degraded", message="No songs found in document"),
                )
            if parsed.slot_markers_seen == 0:
                self._warn(
                    run,
                    PipelineWarning(
                        kind="parse_degraded",
                        message="No service slot markers found; songs default to Praise 1",
                    ),
                )

        run.advance("parsed")
        record_step("parse", "ok")
        logger.info(
            "Parsed service order",
            extra={
                "structured": {
                    "run_id": str(run.run_id),
                    "sections": len(parsed.sections),
                    "special_service_type": parsed.special_service_type,
                    "date": parsed.date,
                }
            },
        )
        return run

    # Step 2: match

    async def fetch_pools(
        self, run_id: str | None = None
    ) -> tuple[dict[PoolKey, list[CandidatePresentation]], datetime | None]:
        """Fetch every configured library concurrently.

        Returns the pools and the oldest fetch time among them.
        """
        library_ids: list[tuple[PoolKey, str]] = [
            (PoolKey.worship, lib_id) for lib_id in self.settings.worship_library_ids
        ]
        if self.settings.kids_library_id:
            library_ids.append((PoolKey.kids, self.settings.kids_library_id))
        if self.settings.service_content_library_id:
            library_ids.append((PoolKey.service_content, self.settings.service_content_library_id))

        fetched = await asyncio.gather(
            *(
                self.client.get_library_presentations(lib_id, run_id=run_id)
                for _, lib_id in library_ids
            )
        )

        pools: dict[PoolKey, list[CandidatePresentation]] = {key: [] for key in PoolKey}
        for (key, _), result in zip(library_ids, fetched, strict=True):
            pools[key].extend(result.value)
        oldest = min((r.provenance.fetched_at for r in fetched), default=None)
        return pools, oldest

    def _restore_selections(self, run: PipelineRun, kind: SelectionKind) -> None:
        available = {p.id: p for pool in run.pools.values() for p in pool}
        for result in run.results(kind):
            key = (kind, result.position)
            content_id = run.manual_selections.get(key)
            if content_id is None:
                continue
            presentation = available.get(content_id)
            if presentation is None:
                # Picked presentation no longer exists in ProPresenter
                del run.manual_selections[key]
                continue
            result.selected = presentation

    async def match(self, run: PipelineRun) -> PipelineRun:
        """Match songs and readings against freshly fetched pools."""
        run.require_step("parsed", "matched", "built")
        assert run.parsed is not None

        run.pools, run.pools_fetched_at = await self.fetch_pools(run_id=str(run.run_id))
        aliases = await asyncio.to_thread(self.aliases.as_mappings) if self.aliases else None

        run.song_results = match_sections(
            run.parsed.sections, run.pools, self._matching, aliases
        )
        run.verse_results = match_verses(
            run.parsed.sections,
            run.pools[PoolKey.service_content],
            max_candidates=self.settings.max_candidates,
        )
        self._restore_selections(run, "song")
        self._restore_selections(run, "verse")

        all_results = run.song_results + run.verse_results
        attach_fallbacks(all_results, bible_version=self.settings.bible_version)

        run.warnings = [w for w in run.warnings if w.kind == "parse_degraded"]
        for result in all_results:
            record_match_outcome(result.strategy.value, _outcome(result))
            if result.not_found:
                self._warn(
                    run,
                    PipelineWarning(
                        kind="no_candidates",
                        message=f"No candidates for '{result.source_title}'",
                        position=result.position,
                    ),
                )

        run.statistics = calculate_statistics(all_results)
        run.advance("matched")
        record_step("match", "ok")
        logger.info(
            "Matched service order",
            extra={
                "structured": {
                    "run_id": str(run.run_id),
                    **run.statistics.model_dump(),
                }
            },
        )
        return run

    async def select(
        self,
        run: PipelineRun,
        kind: SelectionKind,
        index: int,
        content_id: str | None,
        *,
        remember: bool = False,
    ) -> MatchResult:
        """Confirm (or clear, with ``content_id=None``) the presentation for one result.

        The id may come from the candidate list or from anywhere in the fetched
        pools (the manual search picker).

        Raises:
            SelectionError: Index out of range or id unknown
        """
        run.require_step("matched", "built")
        results = run.results(kind)
        if not 0 <= index < len(results):
            raise SelectionError(f"No {kind} result at index {index}")
        result = results[index]
        key = (kind, result.position)

        if content_id is None:
            result.selected = None
            run.manual_selections.pop(key, None)
        else:
            presentation = next(
                (c.presentation for c in result.candidates if c.presentation.id == content_id),
                None,
            )
            if presentation is None:
                presentation = next(
                    (p for pool in run.pools.values() for p in pool if p.id == content_id),
                    None,
                )
            if presentation is None:
                raise SelectionError(f"Presentation {content_id} is not in any library")
            result.selected = presentation
            run.manual_selections[key] = content_id

            if remember and kind == "song" and self.aliases is not None:
                await asyncio.to_thread(
                    self.aliases.set,
                    result.source_title,
                    presentation.id,
                    presentation.display_name,
                )

        result.fallback = manual_fallback(result, bible_version=self.settings.bible_version)
        run.updated_at = self._clock()
        return result

    # Step 3: build

    def _check_staleness(
        self, run: PipelineRun, label: str, fetched_at: datetime | None, limit_seconds: int
    ) -> None:
        if fetched_at is None:
            return
        age = (self._clock() - fetched_at).total_seconds()
        if age > limit_seconds:
            self._warn(
                run,
                PipelineWarning(
                    kind="stale_read",
                    message=f"{label} was read {age:.0f}s before writing",
                ),
            )

    async def build(self, run: PipelineRun, playlist_id: str) -> BuildSummary:
        """Patch the selected content into ``playlist_id`` with one replace call.

        Raises:
            StepOrderError: Run has not been matched
            ReconcileRejectedError: ProPresenter rejected the write
            EmptyContentIdError: Reconciled output violates the write contract
        """
        run.require_step("matched", "built")
        replacements = group_selections(run.song_results + run.verse_results)
        run.warnings = [w for w in run.warnings if w.kind not in ("stale_read", "unplaced")]

        async with self._lock_for(playlist_id):
            current = await self.client.get_playlist_items(playlist_id, run_id=str(run.run_id))
            items, placed = reconcile_with_placement(
                current.value, replacements, DEFAULT_HEADER_TO_SLOT
            )

            for slot, drafts in replacements.items():
                if slot not in placed:
                    self._warn(
                        run,
                        PipelineWarning(
                            kind="unplaced",
                            message=(
                                f"Playlist {playlist_id} has no header for {slot.value}; "
                                f"{len(drafts)} selected item(s) not placed: "
                                + ", ".join(d.name for d in drafts)
                            ),
                        ),
                    )

            self._check_staleness(
                run,
                "Library snapshot",
                run.pools_fetched_at,
                self.settings.stale_pools_seconds,
            )
            self._check_staleness(
                run,
                f"Playlist {playlist_id}",
                current.provenance.fetched_at,
                self.settings.stale_read_seconds,
            )

            try:
                written = await self.client.replace_playlist_items(
                    playlist_id, items, run_id=str(run.run_id)
                )
            except ReconcileRejectedError as e:
                run.error = str(e)
                record_step("build", "rejected")
                logger.error(
                    "Playlist write rejected",
                    extra={
                        "structured": {
                            "run_id": str(run.run_id),
                            "playlist_id": playlist_id,
                            "status_code": e.status_code,
                        }
                    },
                )
                raise

        summary = BuildSummary(
            playlist_id=playlist_id,
            item_count=written.value,
            replaced_slots=sorted(placed, key=lambda s: s.value),
            written_at=written.provenance.fetched_at,
        )
        run.last_write = summary
        run.error = None
        run.advance("built")
        record_step("build", "ok")
        logger.info(
            "Built playlist",
            extra={
                "structured": {
                    "run_id": str(run.run_id),
                    "playlist_id": playlist_id,
                    "item_count": summary.item_count,
                    "replaced_slots": [s.value for s in summary.replaced_slots],
                }
            },
        )
        return summary

    # Playlist helpers

    async def create_from_template(self, name: str, template_id: str | None = None) -> str:
        """Create a playlist named ``name`` as a copy of the template playlist.

        Raises:
            SelectionError: No template given and none configured
        """
        template_id = template_id or self.settings.template_playlist_id
        if not template_id:
            raise SelectionError("No template playlist configured")

        template = await self.client.get_playlist_items(template_id)
        items = clone_items(template.value)
        created = await self.client.create_playlist(name)
        new_id = created.value

        if items:
            async with self._lock_for(new_id):
                await self.client.replace_playlist_items(new_id, items)

        record_step("create_playlist", "ok")
        logger.info(
            "Created playlist from template",
            extra={
                "structured": {
                    "template_id": template_id,
                    "playlist_id": new_id,
                    "item_count": len(items),
                }
            },
        )
        return new_id

    async def focus_section(self, playlist_id: str, header: str) -> int:
        """Focus the playlist and trigger the first header matching ``header``.

        Raises:
            SelectionError: No header matches
        """
        wanted = normalize(header)
        if not wanted:
            raise SelectionError("Header name is empty")

        current = await self.client.get_playlist_items(playlist_id)
        for index, item in enumerate(current.value):
            name = normalize(item.id.name)
            if item.is_header and name and (wanted in name or name in wanted):
                await self.client.focus_playlist(playlist_id)
                await self.client.trigger_playlist_item(playlist_id, index)
                return index
        raise SelectionError(f"No section header matching '{header}'")

    async def search_libraries(
        self, library_ids: Sequence[str], query: str
    ) -> list[CandidatePresentation]:
        """Substring search across several libraries for the manual picker."""
        fetched = await asyncio.gather(
            *(self.client.get_library_presentations(lib_id) for lib_id in library_ids)
        )
        merged = [p for result in fetched for p in result.value]
        return search_presentations(merged, query)

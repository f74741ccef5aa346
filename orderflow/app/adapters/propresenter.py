"""ProPresenter network API (v1) adapter.

Every call runs through the CallExecutor: reads are retried with jitter,
writes and commands are attempted once.
"""

import uuid
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

import httpx

from orderflow.app.config import Settings
from orderflow.app.errors import PipelineError, ReconcileRejectedError
from orderflow.app.models.matching import CandidatePresentation
from orderflow.app.models.playlist import LibraryInfo, PlaylistItem
from orderflow.app.tools.executor import (
    CallConfig,
    CallContext,
    CallExecutor,
    CallResult,
    CancelToken,
)

T = TypeVar("T")


def _uuid_and_name(raw: dict[str, Any]) -> tuple[str, str]:
    # v1 nests identity under "id"; older builds put it at the top level
    ident = raw.get("id")
    if isinstance(ident, dict):
        return ident.get("uuid") or "", ident.get("name") or ""
    return raw.get("uuid") or "", raw.get("name") or ""


class ProPresenterClient:
    """Async client for one ProPresenter instance."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_ms: int = 10000,
        read_retry_count: int = 1,
        retry_jitter_min_ms: int = 200,
        retry_jitter_max_ms: int = 500,
        client: httpx.AsyncClient | None = None,
        executor: CallExecutor | None = None,
    ) -> None:
        """Initialize client.

        Args:
            base_url: e.g. ``http://localhost:1025``
            timeout_ms: Per-attempt timeout
            read_retry_count: Retries for read calls (writes never retry)
            retry_jitter_min_ms: Lower bound of retry jitter
            retry_jitter_max_ms: Upper bound of retry jitter
            client: Optional httpx client (for testing with mocks)
            executor: Optional call executor (defaults to one without metrics)
        """
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_ms / 1000)
        self._executor = executor or CallExecutor()
        self._read_config = CallConfig(
            timeout_ms=timeout_ms,
            retry_count=read_retry_count,
            retry_jitter_min_ms=retry_jitter_min_ms,
            retry_jitter_max_ms=retry_jitter_max_ms,
            retry_on=(httpx.HTTPError,),
        )
        self._write_config = CallConfig(
            timeout_ms=timeout_ms,
            retry_count=0,
            retry_on=(httpx.TransportError,),
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        client: httpx.AsyncClient | None = None,
        executor: CallExecutor | None = None,
    ) -> "ProPresenterClient":
        return cls(
            settings.base_url,
            timeout_ms=settings.request_timeout_ms,
            read_retry_count=settings.read_retry_count,
            retry_jitter_min_ms=settings.retry_jitter_min_ms,
            retry_jitter_max_ms=settings.retry_jitter_max_ms,
            client=client,
            executor=executor,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ProPresenterClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def _run(
        self,
        call_name: str,
        path: str,
        fn: Callable[[], Awaitable[T]],
        *,
        write: bool = False,
        run_id: str | None = None,
        cancel_token: CancelToken | None = None,
    ) -> CallResult[T]:
        ctx = CallContext(trace_id=str(uuid.uuid4()), run_id=run_id, call_name=call_name)
        config = self._write_config if write else self._read_config
        return await self._executor.execute(
            ctx, config, fn, cancel_token, source_url=self._url(path)
        )

    async def _get_json(self, path: str) -> Any:
        response = await self._client.get(self._url(path))
        response.raise_for_status()
        return response.json()

    # Reads

    async def version(self) -> CallResult[dict[str, str]]:
        """Connectivity check: ``{name, platform, version}``."""

        async def fetch() -> dict[str, str]:
            data = await self._get_json("/version")
            return {
                "name": data.get("name") or "ProPresenter",
                "platform": data.get("platform") or "",
                "version": data.get("version")
                or data.get("api_version")
                or data.get("host_description")
                or "",
            }

        return await self._run("propresenter.version", "/version", fetch)

    async def get_libraries(self) -> CallResult[list[LibraryInfo]]:
        async def fetch() -> list[LibraryInfo]:
            data = await self._get_json("/v1/libraries")
            libraries = []
            for raw in data or []:
                lib_id, name = _uuid_and_name(raw)
                if lib_id:
                    libraries.append(LibraryInfo(id=lib_id, name=name))
            return libraries

        return await self._run("propresenter.libraries", "/v1/libraries", fetch)

    async def get_library_presentations(
        self, library_id: str, *, run_id: str | None = None
    ) -> CallResult[list[CandidatePresentation]]:
        """All presentations of one library as candidates tagged with the library id."""
        path = f"/v1/library/{library_id}"

        async def fetch() -> list[CandidatePresentation]:
            data = await self._get_json(path)
            presentations = []
            for raw in data.get("items") or []:
                content_id, name = _uuid_and_name(raw)
                if content_id:
                    presentations.append(
                        CandidatePresentation(id=content_id, display_name=name, pool_id=library_id)
                    )
            return presentations

        return await self._run("propresenter.library", path, fetch, run_id=run_id)

    async def get_playlist_items(
        self, playlist_id: str, *, run_id: str | None = None
    ) -> CallResult[list[PlaylistItem]]:
        path = f"/v1/playlist/{playlist_id}"

        async def fetch() -> list[PlaylistItem]:
            data = await self._get_json(path)
            return [PlaylistItem.model_validate(raw) for raw in data.get("items") or []]

        return await self._run("propresenter.playlist", path, fetch, run_id=run_id)

    # Writes

    async def replace_playlist_items(
        self,
        playlist_id: str,
        items: Sequence[PlaylistItem],
        *,
        run_id: str | None = None,
    ) -> CallResult[int]:
        """Replace the whole item array of a playlist in one PUT.

        Raises:
            ReconcileRejectedError: ProPresenter answered with a non-2xx status
        """
        path = f"/v1/playlist/{playlist_id}"
        body = [item.to_wire() for item in items]

        async def put() -> int:
            response = await self._client.put(self._url(path), json=body)
            if not response.is_success:
                raise ReconcileRejectedError(response.status_code, response.text)
            return len(body)

        return await self._run(
            "propresenter.playlist_replace", path, put, write=True, run_id=run_id
        )

    async def create_playlist(self, name: str) -> CallResult[str]:
        """Create an empty playlist and return its id."""
        path = "/v1/playlists"

        async def post() -> str:
            response = await self._client.post(self._url(path), json={"name": name})
            if not response.is_success:
                raise ReconcileRejectedError(response.status_code, response.text)
            playlist_id, _ = _uuid_and_name(response.json() or {})
            if not playlist_id:
                raise PipelineError(f"ProPresenter returned no id for playlist {name!r}")
            return playlist_id

        return await self._run("propresenter.playlist_create", path, post, write=True)

    # Commands

    async def _command(self, call_name: str, path: str) -> CallResult[None]:
        async def send() -> None:
            response = await self._client.get(self._url(path))
            response.raise_for_status()

        return await self._run(call_name, path, send, write=True)

    async def focus_playlist(self, playlist_id: str) -> CallResult[None]:
        return await self._command("propresenter.focus", f"/v1/playlist/{playlist_id}/focus")

    async def trigger_playlist_item(self, playlist_id: str, index: int) -> CallResult[None]:
        return await self._command(
            "propresenter.trigger", f"/v1/playlist/{playlist_id}/{index}/trigger"
        )

"""Shared pytest fixtures for all test suites.

``FakeProPresenter`` is an in-memory stand-in for the ProPresenter v1 network
API, served through ``httpx.MockTransport``.
"""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from orderflow.app.adapters.propresenter import ProPresenterClient
from orderflow.app.config import Settings
from orderflow.app.matching.aliases import AliasStore
from orderflow.app.orchestration.pipeline import ServicePipeline
from orderflow.app.tools.executor import CallExecutor

BASE_URL = "http://propresenter.test"


def header(name: str, uuid: str = "") -> dict[str, Any]:
    """Wire-format header item."""
    return {
        "id": {"name": name, "index": 0, "uuid": uuid or f"hdr-{name.lower().replace(' ', '-')}"},
        "type": "header",
        "is_hidden": False,
        "is_pco": False,
        "header_color": {"red": 0.2, "green": 0.4, "blue": 0.8, "alpha": 1},
        "destination": "presentation",
    }


def leaf(name: str, content_id: str, uuid: str | None = None) -> dict[str, Any]:
    """Wire-format presentation leaf; ``uuid`` defaults to the content id."""
    return {
        "id": {"name": name, "index": 0, "uuid": content_id if uuid is None else uuid},
        "type": "presentation",
        "is_hidden": False,
        "is_pco": False,
        "presentation_info": {
            "presentation_uuid": content_id,
            "arrangement_name": "",
            "arrangement_uuid": "",
        },
        "destination": "presentation",
        "thumbnail": "ignored-on-write",
    }


async def no_sleep(_: float) -> None:
    return None


class FakeProPresenter:
    """In-memory ProPresenter serving the v1 endpoints the client uses."""

    def __init__(self) -> None:
        self.libraries: dict[str, tuple[str, list[dict[str, Any]]]] = {}
        self.playlists: dict[str, list[dict[str, Any]]] = {}
        self.requests: list[httpx.Request] = []
        self.puts: list[tuple[str, list[dict[str, Any]]]] = []
        self.reject_put: tuple[int, str] | None = None
        self.triggered: list[tuple[str, int]] = []
        self.focused: list[str] = []
        self.fail_paths: set[str] = set()
        self._created = 0

    def add_library(self, library_id: str, name: str, titles: list[str]) -> None:
        items = [
            {"id": {"uuid": f"{library_id}:{i}", "name": title, "index": i}}
            for i, title in enumerate(titles)
        ]
        self.libraries[library_id] = (name, items)

    def put_count(self, playlist_id: str) -> int:
        return sum(1 for pid, _ in self.puts if pid == playlist_id)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        parts = [p for p in path.split("/") if p]

        if path in self.fail_paths:
            return httpx.Response(500, text="boom")

        if request.method == "GET" and path == "/version":
            return httpx.Response(
                200,
                json={"name": "ProPresenter", "platform": "mac", "api_version": "v1"},
            )

        if request.method == "GET" and path == "/v1/libraries":
            return httpx.Response(
                200,
                json=[
                    {"uuid": lib_id, "name": name, "index": i}
                    for i, (lib_id, (name, _)) in enumerate(self.libraries.items())
                ],
            )

        if request.method == "GET" and parts[:2] == ["v1", "library"] and len(parts) == 3:
            if parts[2] not in self.libraries:
                return httpx.Response(404, text="library not found")
            return httpx.Response(
                200, json={"update_type": "library", "items": self.libraries[parts[2]][1]}
            )

        if request.method == "POST" and path == "/v1/playlists":
            self._created += 1
            new_id = f"pl-new-{self._created}"
            name = json.loads(request.content)["name"]
            self.playlists[new_id] = []
            return httpx.Response(
                200,
                json={"id": {"uuid": new_id, "name": name, "index": 9}, "type": "playlist"},
            )

        if parts[:2] == ["v1", "playlist"] and len(parts) >= 3:
            playlist_id = parts[2]
            if playlist_id not in self.playlists:
                return httpx.Response(404, text="playlist not found")

            if request.method == "GET" and len(parts) == 3:
                return httpx.Response(
                    200,
                    json={
                        "id": {"uuid": playlist_id, "name": playlist_id, "index": 0},
                        "items": self.playlists[playlist_id],
                    },
                )
            if request.method == "PUT" and len(parts) == 3:
                if self.reject_put is not None:
                    status, body = self.reject_put
                    return httpx.Response(status, text=body)
                items = json.loads(request.content)
                self.puts.append((playlist_id, items))
                self.playlists[playlist_id] = items
                return httpx.Response(200)
            if request.method == "GET" and parts[3:] == ["focus"]:
                self.focused.append(playlist_id)
                return httpx.Response(204)
            if request.method == "GET" and len(parts) == 5 and parts[4] == "trigger":
                self.triggered.append((playlist_id, int(parts[3])))
                return httpx.Response(204)

        return httpx.Response(404, text=f"no route for {request.method} {path}")

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_propresenter() -> FakeProPresenter:
    """ProPresenter seeded with three libraries, a Sunday playlist and a template."""
    fake = FakeProPresenter()
    fake.add_library(
        "lib-worship",
        "Worship",
        [
            "Blessed Be Your Name",
            "Faithful One So Unchanging",
            "Great Is Thy Faithfulness",
            "In Christ Alone",
            "Mary Did You Know",
        ],
    )
    fake.add_library("lib-kids", "Kids", ["The Christmas Story", "Jesus Loves Me"])
    fake.add_library(
        "lib-content",
        "Service Content",
        ["Luke 2_21-40 (NIV)-1", "John 3_16 (NIV)-1", "Notices Loop"],
    )
    fake.playlists["pl-sunday"] = [
        header("Pre-Service"),
        leaf("Notices Loop", "lib-content:2"),
        header("Praise 1"),
        leaf("Old Opener", "old-1"),
        leaf("Old Second", "old-2"),
        header("Bible Reading"),
        leaf("Old Reading", "old-3"),
        header("Praise 2"),
        leaf("Old Middle", "old-4"),
        header("Communion"),
        leaf("Communion Loop", "comm-1", uuid=""),
        header("Praise 3"),
        leaf("Old Closer", "old-5"),
    ]
    fake.playlists["pl-template"] = [
        header("Praise 1", uuid="tmpl-h1"),
        leaf("Welcome", "welcome-1", uuid="tmpl-l1"),
        header("Praise 2", uuid="tmpl-h2"),
    ]
    return fake


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        propresenter_host="propresenter.test",
        propresenter_port=80,
        worship_library_ids=["lib-worship"],
        kids_library_id="lib-kids",
        service_content_library_id="lib-content",
        template_playlist_id="pl-template",
        alias_store_path=tmp_path / "aliases.json",
    )


@pytest.fixture
def make_client(fake_propresenter: FakeProPresenter) -> Callable[..., ProPresenterClient]:
    """Factory for clients wired to the fake, optionally through another transport."""

    def _make(
        *, read_retry_count: int = 1, transport: httpx.AsyncBaseTransport | None = None
    ) -> ProPresenterClient:
        return ProPresenterClient(
            BASE_URL,
            timeout_ms=1000,
            read_retry_count=read_retry_count,
            client=httpx.AsyncClient(transport=transport or fake_propresenter.transport()),
            executor=CallExecutor(sleep_fn=no_sleep),
        )

    return _make


@pytest.fixture
def propresenter_client(make_client: Callable[..., ProPresenterClient]) -> ProPresenterClient:
    return make_client()


@pytest.fixture
def alias_store(settings: Settings) -> AliasStore:
    return AliasStore(settings.alias_store_path)


@pytest.fixture
def pipeline(
    propresenter_client: ProPresenterClient, settings: Settings, alias_store: AliasStore
) -> ServicePipeline:
    return ServicePipeline(propresenter_client, settings, aliases=alias_store)


SUNDAY_ORDER = """\
SUNDAY MORNING, 1st February 2026 - 11am
[Live Streamed from Room 1]
10:30am: Call to Worship
PRAISE: Blessed Be Your Name (Praise Team)
PRAISE: Faithful One
BIBLE READING: Luke 2:21-40
Praying for others
PRAISE: Great Is Thy Faithfulness
Prayerful Reflection
PRAISE: In Christ Alone
"""


@pytest.fixture
def sunday_order() -> str:
    return SUNDAY_ORDER

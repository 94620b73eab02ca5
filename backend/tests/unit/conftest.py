"""Unit test conftest for setting up test environment."""

import os

# Set environment variables before importing any roadmap_connector modules
# so Settings picks them up during test collection
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("CONNECTOR_ID", "RoadmapTest")
os.environ.setdefault("GRAPH_ACCESS_TOKEN", "test-token")
os.environ.setdefault("GRAPH_API_URL", "https://graph.test/v1.0")
os.environ.setdefault("SOURCE_API_URL", "https://roadmap.test/api/v1/m365")
os.environ.setdefault("WATERMARK_BACKEND", "file")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

import asyncio  # noqa: E402
from datetime import datetime, timezone  # noqa: E402
from typing import Any, Dict, List, Optional  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402

from roadmap_connector.core.exceptions import IngestionError  # noqa: E402
from roadmap_connector.platform.destinations._base import BaseDestination  # noqa: E402
from roadmap_connector.platform.entities.roadmap import RoadmapItem  # noqa: E402
from roadmap_connector.platform.sources.roadmap import RoadmapSource  # noqa: E402

SOURCE_URL = "https://roadmap.test/api/v1/m365"


class FakeDestination(BaseDestination):
    """In-memory destination recording what it was asked to do."""

    def __init__(self, ready: bool = True):
        super().__init__()
        self.ready = ready
        self.items: Dict[str, RoadmapItem] = {}
        self.inserted: List[str] = []
        self.deleted: List[str] = []
        self.setup_calls = 0
        self.torn_down = False
        self.insert_started = asyncio.Event()
        self.gate: Optional[asyncio.Event] = None
        self.fail_on: Optional[str] = None

    async def is_ready(self) -> bool:
        return self.ready

    async def setup(self) -> bool:
        self.setup_calls += 1
        self.ready = True
        return True

    async def insert(self, item: RoadmapItem) -> None:
        self.insert_started.set()
        if self.gate is not None:
            await self.gate.wait()
        if item.id == self.fail_on:
            raise IngestionError(f"Graph PUT items/{item.id} failed with 500", status_code=500)
        self.items[item.id] = item
        self.inserted.append(item.id)

    async def delete(self, item_id: str) -> None:
        self.deleted.append(item_id)
        self.items.pop(item_id, None)

    async def teardown(self) -> None:
        self.torn_down = True
        self.ready = False
        self.items.clear()


class FakeRoadmapApi:
    """Mock transport handler serving a mutable roadmap payload."""

    def __init__(self, payload: Any = None, status_code: int = 200):
        self.payload = payload if payload is not None else []
        self.status_code = status_code
        self.calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        return httpx.Response(self.status_code, json=self.payload)


def make_record(
    record_id: Any,
    modified: Optional[str] = "2024-01-01T00:00:00Z",
    **fields: Any,
) -> Dict[str, Any]:
    """Build a roadmap API entry."""
    record: Dict[str, Any] = {
        "id": record_id,
        "title": f"Feature {record_id}",
        "description": f"Description of feature {record_id}",
        "status": "In development",
        "created": "2023-06-01T08:00:00Z",
        "modified": modified,
        "tagsContainer": {
            "products": [{"tagName": "Microsoft Teams"}],
            "platforms": [{"tagName": "Web"}, {"tagName": "Desktop"}],
            "releasePhase": [{"tagName": "General Availability"}],
            "cloudInstances": [{"tagName": "Worldwide (Standard Multi-Tenant)"}],
        },
    }
    record.update(fields)
    return record


class FakeClock:
    """Clock returning a settable time."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def fake_destination():
    """Create a ready in-memory destination."""
    return FakeDestination()


@pytest.fixture
def roadmap_api():
    """Create a roadmap API handler with an empty payload."""
    return FakeRoadmapApi()


@pytest.fixture
def roadmap_source(roadmap_api):
    """Create a roadmap source backed by the mock roadmap API."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(roadmap_api))
    return RoadmapSource(SOURCE_URL, client=client)


@pytest.fixture
def clock():
    """Create a clock fixed at 2024-03-01 12:00 UTC."""
    return FakeClock(datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def record_factory():
    """Return a builder for roadmap API entries."""
    return make_record

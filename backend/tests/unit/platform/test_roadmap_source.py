"""Tests for the roadmap source.

The roadmap API is served through an httpx MockTransport.
"""

from datetime import datetime, timezone
from unittest.mock import patch

import httpx
import pytest

from roadmap_connector.core.exceptions import MalformedResponse, UpstreamUnavailable
from roadmap_connector.platform.entities.roadmap import RoadmapRecord
from roadmap_connector.platform.sources.roadmap import RoadmapSource, filter_modified_since
from roadmap_connector.platform.transformers.roadmap import normalize


@pytest.fixture
def payload(record_factory):
    """Create three records modified a day apart."""
    return [
        record_factory(1, modified="2024-01-01T00:00:00Z"),
        record_factory(2, modified="2024-01-02T00:00:00Z"),
        record_factory(3, modified="2024-01-03T00:00:00Z"),
    ]


@pytest.mark.asyncio
async def test_fetch_without_since_returns_everything(roadmap_api, roadmap_source, payload):
    """Test that a full fetch keeps every record in upstream order."""
    roadmap_api.payload = payload

    records = await roadmap_source.fetch(None)

    assert [r.id for r in records] == [1, 2, 3]
    assert roadmap_api.calls == 1


@pytest.mark.asyncio
async def test_fetch_with_since_is_inclusive(roadmap_api, roadmap_source, payload):
    """Test that records modified exactly at the watermark are included."""
    roadmap_api.payload = payload

    records = await roadmap_source.fetch(datetime(2024, 1, 2, tzinfo=timezone.utc))

    assert [r.id for r in records] == [2, 3]


@pytest.mark.asyncio
async def test_fetch_excludes_records_without_modified(
    roadmap_api, roadmap_source, record_factory
):
    """Test that records without a usable modification time never match a window."""
    roadmap_api.payload = [
        record_factory(1, modified=None),
        record_factory(2, modified="garbage"),
        record_factory(3, modified="2024-05-01T00:00:00Z"),
    ]

    windowed = await roadmap_source.fetch(datetime(2024, 1, 1, tzinfo=timezone.utc))
    everything = await roadmap_source.fetch(None)

    assert [r.id for r in windowed] == [3]
    assert [r.id for r in everything] == [1, 2, 3]


def test_filter_is_monotonic_in_since(payload):
    """Test that an earlier watermark never selects fewer records."""
    records = [RoadmapRecord.model_validate(entry) for entry in payload]
    earlier = datetime(2024, 1, 1, 12, tzinfo=timezone.utc)
    later = datetime(2024, 1, 2, 12, tzinfo=timezone.utc)

    selected_earlier = {r.id for r in filter_modified_since(records, earlier)}
    selected_later = {r.id for r in filter_modified_since(records, later)}

    assert selected_later <= selected_earlier
    assert selected_earlier == {2, 3}
    assert selected_later == {3}


def test_filter_treats_naive_since_as_utc(payload):
    """Test that a naive watermark is compared as UTC."""
    records = [RoadmapRecord.model_validate(entry) for entry in payload]

    selected = filter_modified_since(records, datetime(2024, 1, 3))

    assert [r.id for r in selected] == [3]


@pytest.mark.asyncio
async def test_fetch_non_list_payload_is_malformed(roadmap_api, roadmap_source):
    """Test that an object payload is rejected."""
    roadmap_api.payload = {"value": []}

    with pytest.raises(MalformedResponse):
        await roadmap_source.fetch(None)


@pytest.mark.asyncio
async def test_fetch_non_object_entry_is_malformed(roadmap_api, roadmap_source, record_factory):
    """Test that a list entry that is not an object is rejected."""
    roadmap_api.payload = [record_factory(1), "oops"]

    with pytest.raises(MalformedResponse, match="entry 1"):
        await roadmap_source.fetch(None)


@pytest.mark.asyncio
async def test_fetch_keeps_records_with_malformed_tags(roadmap_api, roadmap_source, record_factory):
    """Test that a record with odd tags does not fail the whole fetch."""
    odd_tags = {"products": "Microsoft Teams", "platforms": [3, {"tagName": 9}]}
    roadmap_api.payload = [record_factory(1), record_factory(2, tagsContainer=odd_tags)]

    records = await roadmap_source.fetch(None)

    assert [r.id for r in records] == [1, 2]
    assert normalize(records[1]).platforms == ["9"]


@pytest.mark.asyncio
async def test_fetch_invalid_json_is_malformed():
    """Test that a body that is not JSON is rejected."""
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html></html>"))
    client = httpx.AsyncClient(transport=transport)
    source = RoadmapSource("https://roadmap.test/api", client=client)

    with pytest.raises(MalformedResponse):
        await source.fetch(None)


@pytest.mark.asyncio
async def test_fetch_error_status_is_upstream_unavailable(roadmap_api, roadmap_source):
    """Test that a non-success status raises UpstreamUnavailable with the status code."""
    roadmap_api.status_code = 503

    with pytest.raises(UpstreamUnavailable) as exc_info:
        await roadmap_source.fetch(None)

    assert exc_info.value.status_code == 503
    assert roadmap_api.calls == 1


@pytest.mark.asyncio
async def test_fetch_network_error_is_upstream_unavailable():
    """Test that a connection failure raises UpstreamUnavailable."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    source = RoadmapSource("https://roadmap.test/api", client=client)

    with pytest.raises(UpstreamUnavailable):
        await source.fetch(None)


@pytest.mark.asyncio
async def test_generate_items_normalizes_lazily(roadmap_api, roadmap_source, payload):
    """Test that a consumer stopping early never normalizes the rest."""
    roadmap_api.payload = payload

    with patch(
        "roadmap_connector.platform.sources.roadmap.normalize",
        wraps=normalize,
    ) as mock_normalize:
        async for item in roadmap_source.generate_items(None):
            assert item.id == "1"
            break

    assert mock_normalize.call_count == 1
    assert roadmap_api.calls == 1


@pytest.mark.asyncio
async def test_generate_items_applies_url_template(roadmap_api, record_factory):
    """Test that the source passes its URL template to the normalizer."""
    roadmap_api.payload = [record_factory(77)]
    source = RoadmapSource(
        "https://roadmap.test/api",
        client=httpx.AsyncClient(transport=httpx.MockTransport(roadmap_api)),
        url_template="https://roadmap.example.com/{id}",
    )

    items = [item async for item in source.generate_items(None)]

    assert [item.url for item in items] == ["https://roadmap.example.com/77"]

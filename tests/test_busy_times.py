"""Tests for the calendar busy-times client with a mocked transport."""

from datetime import datetime, timezone
from unittest.mock import patch

import httpx
import pytest

from coach_booking.busy_times import BUSY_TIMES_HORIZON_DAYS, BusyTimesClient
from coach_booking.schema import BusyInterval


def _client(handler) -> BusyTimesClient:
    return BusyTimesClient(
        api_key="test-key",
        base_url="https://cal.test/v2/",
        transport=httpx.MockTransport(handler),
    )


def test_get_busy_times_sends_query_and_parses_data():
    """get_busy_times builds the provider query and returns BusyInterval models."""
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        seen["auth"] = request.headers["Authorization"]
        return httpx.Response(
            200,
            json={
                "status": "success",
                "data": [
                    {"start": "2025-02-04T14:00:00Z", "end": "2025-02-04T15:00:00Z", "source": "google"},
                    {"start": "2025-02-05T09:00:00-05:00", "end": "2025-02-05T10:00:00-05:00"},
                ],
            },
        )

    date_from = datetime(2025, 2, 3, tzinfo=timezone.utc)
    date_to = datetime(2025, 3, 6, tzinfo=timezone.utc)
    busy = _client(handler).get_busy_times(
        credential_id="42",
        external_id="coach@example.com",
        time_zone="America/New_York",
        date_from=date_from,
        date_to=date_to,
    )

    assert busy == [
        BusyInterval(start="2025-02-04T14:00:00Z", end="2025-02-04T15:00:00Z", source="google"),
        BusyInterval(start="2025-02-05T09:00:00-05:00", end="2025-02-05T10:00:00-05:00"),
    ]
    url = seen["url"]
    assert url.path == "/v2/calendars/busy-times"
    assert url.params["dateFrom"] == "2025-02-03T00:00:00.000Z"
    assert url.params["dateTo"] == "2025-03-06T00:00:00.000Z"
    assert url.params["loggedInUsersTz"] == "America/New_York"
    assert url.params["calendarsToLoad[0][credentialId]"] == "42"
    assert url.params["calendarsToLoad[0][externalId]"] == "coach@example.com"
    assert seen["auth"] == "Bearer test-key"


def test_get_busy_times_default_horizon():
    """Without explicit bounds the query covers BUSY_TIMES_HORIZON_DAYS from now."""
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = request.url.params
        return httpx.Response(200, json={"data": []})

    assert _client(handler).get_busy_times("1", "ext", "UTC") == []

    date_from = datetime.fromisoformat(seen["params"]["dateFrom"].replace("Z", "+00:00"))
    date_to = datetime.fromisoformat(seen["params"]["dateTo"].replace("Z", "+00:00"))
    assert (date_to - date_from).days == BUSY_TIMES_HORIZON_DAYS


def test_entries_without_bounds_become_malformed_intervals():
    """Entries missing start/end are kept so the slot engine blocks on them."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": [{"end": "2025-02-04T15:00:00Z"}, "junk"]})

    busy = _client(handler).get_busy_times("1", "ext", "UTC")
    assert busy == [BusyInterval(start="", end="2025-02-04T15:00:00Z")]


def test_missing_data_list_is_empty():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "success"})

    assert _client(handler).get_busy_times("1", "ext", "UTC") == []


def test_http_error_propagates():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": "unauthorized"})

    with pytest.raises(httpx.HTTPStatusError):
        _client(handler).get_busy_times("1", "ext", "UTC")


@patch.dict("os.environ", {"CAL_API_KEY": ""})
def test_missing_api_key_raises_value_error():
    client = BusyTimesClient()
    with pytest.raises(ValueError, match="CAL_API_KEY"):
        client.get_busy_times("1", "ext", "UTC")


@patch.dict("os.environ", {"CAL_API_KEY": "env-key", "CAL_BASE_URL": "https://cal.example/v2/"})
def test_config_from_environment():
    client = BusyTimesClient()
    assert client.api_key == "env-key"
    assert client.base_url == "https://cal.example/v2"


def test_explicit_base_url_trailing_slash_is_stripped():
    client = BusyTimesClient(api_key="k", base_url="https://cal.test/v2/")
    assert client.base_url == "https://cal.test/v2"

"""Integration tests for JSON requests."""

import logging
from collections.abc import AsyncGenerator

import aiohttp
import pytest
from aioresponses import aioresponses as aioresponses_cls
from yarl import URL

from zephyr_upload.http import JsonResponse, request_json

URL_ = "http://zephyr.test/rest/zapi/latest/cycle"


@pytest.fixture
async def session(
    aioresponses: aioresponses_cls,
) -> AsyncGenerator[aiohttp.ClientSession, None]:
    """Create a client session."""
    async with aiohttp.ClientSession() as impl:
        yield impl


async def test_decodes_json_body(
    session: aiohttp.ClientSession, aioresponses: aioresponses_cls
) -> None:
    """Returns status and decoded body of a JSON response."""
    aioresponses.post(URL_, payload={"id": "42"})

    response = await request_json(session, "POST", URL_, payload={"name": "cycle"})

    assert response.ok
    assert response.status == 200
    assert response.json == {"id": "42"}
    assert response.method == "POST"
    assert response.url == URL_
    call = aioresponses.requests[("POST", URL(URL_))][0]
    assert call.kwargs["json"] == {"name": "cycle"}


async def test_ignores_body_of_other_content_types(
    session: aiohttp.ClientSession, aioresponses: aioresponses_cls
) -> None:
    """Bodies are only decoded for JSON content types."""
    aioresponses.get(URL_, body="<html>login</html>", content_type="text/html")

    response = await request_json(session, "GET", URL_)

    assert response.ok
    assert response.json is None


async def test_tolerates_invalid_json(
    session: aiohttp.ClientSession, aioresponses: aioresponses_cls
) -> None:
    """A JSON content type with a broken body yields no body."""
    aioresponses.get(URL_, body="{not json", content_type="application/json")

    response = await request_json(session, "GET", URL_)

    assert response.status == 200
    assert response.json is None


async def test_returns_error_responses(
    session: aiohttp.ClientSession,
    aioresponses: aioresponses_cls,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Error statuses are logged and returned, not raised."""
    aioresponses.get(URL_, status=404, payload={"errorMessages": ["missing"]})

    with caplog.at_level(logging.ERROR):
        response = await request_json(session, "GET", URL_)

    assert not response.ok
    assert response.status == 404
    assert response.json == {"errorMessages": ["missing"]}
    assert f"GET on {URL_} failed with status code 404." in caplog.text


async def test_non_200_success_is_not_ok(
    session: aiohttp.ClientSession, aioresponses: aioresponses_cls
) -> None:
    """Only status 200 counts as success."""
    aioresponses.post(URL_, status=201, payload={"id": "42"})

    response = await request_json(session, "POST", URL_)

    assert not response.ok


async def test_reports_connection_errors_as_status_500(
    session: aiohttp.ClientSession,
    aioresponses: aioresponses_cls,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Requests that get no response come back as a failed response."""
    aioresponses.get(URL_, exception=aiohttp.ClientConnectionError("refused"))

    with caplog.at_level(logging.ERROR):
        response = await request_json(session, "GET", URL_)

    assert response == JsonResponse(method="GET", url=URL_, status=500)
    assert "refused" in caplog.text


async def test_reports_timeouts_as_status_500(
    session: aiohttp.ClientSession, aioresponses: aioresponses_cls
) -> None:
    """Timeouts are reported like connection errors."""
    aioresponses.get(URL_, exception=TimeoutError())

    response = await request_json(session, "GET", URL_)

    assert response.status == 500
    assert response.json is None

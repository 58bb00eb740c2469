"""JSON request/response round trips over an aiohttp session."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import aiohttp

log = logging.getLogger(__name__)

JSON = "application/json"

# Status reported for requests that never got a response.
TRANSPORT_FAILURE_STATUS = 500


@dataclass(frozen=True, kw_only=True)
class JsonResponse:
    """Outcome of one request.

    Never raised as an error: callers look at ``ok`` and treat everything else as
    absence. The method and URL are kept so failures can be reported in context.
    """

    method: str
    url: str
    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    json: Any = None

    @property
    def ok(self) -> bool:
        """Whether the request succeeded with status 200."""
        return self.status == 200


async def request_json(
    session: aiohttp.ClientSession,
    method: str,
    url: str,
    *,
    params: Mapping[str, str] | None = None,
    payload: Any = None,
) -> JsonResponse:
    """Send a request with an optional JSON body and decode a JSON response.

    The body is decoded only when the response declares a JSON content type.
    Responses with status 400 and above are logged and returned as is. Connection
    errors and timeouts are logged and reported as a status 500 response.
    """
    log.debug("%s %s params=%s payload=%s", method, url, params, payload)

    try:
        async with session.request(
            method, url, params=params, json=payload
        ) as response:
            body = None
            if response.content_type.startswith(JSON):
                try:
                    body = await response.json()
                except ValueError as e:
                    log.warning("%s on %s returned invalid JSON: %s", method, url, e)
            result = JsonResponse(
                method=method,
                url=url,
                status=response.status,
                headers=dict(response.headers),
                json=body,
            )
    except (aiohttp.ClientError, TimeoutError) as e:
        log.error("%s on %s failed: %s", method, url, str(e) or type(e).__name__)
        return JsonResponse(method=method, url=url, status=TRANSPORT_FAILURE_STATUS)

    if result.status >= 400:
        log.error(
            "%s on %s failed with status code %d.", method, url, result.status
        )

    log.debug("Status code: %d %s", result.status, result.json)
    return result

"""
Lightweight REST client for talking to the live agent API
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from agent_contract.config.settings import FitnessConfig

logger = logging.getLogger(__name__)

SUPPORTED_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")


@dataclass
class RestResponse:
    """Parsed response: JSON body when the server says JSON, text otherwise"""
    status_code: int
    url: str
    body: Any = None
    headers: Dict[str, str] = field(default_factory=dict)
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return 200 <= self.status_code < 300


def parse_body(response: httpx.Response) -> Any:
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        return response.json()
    return response.text


class RestClient:
    """REST client with optional bearer authentication

    ``transport`` is handed straight to ``httpx.AsyncClient`` so tests can
    plug in ``httpx.MockTransport``.
    """

    def __init__(self, config: FitnessConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.transport = transport

    def _headers(self, headers: Optional[Dict[str, str]], authenticate: bool) -> Dict[str, str]:
        merged: Dict[str, str] = {}
        if authenticate and self.config.api_token:
            merged["Authorization"] = f"Bearer {self.config.api_token}"
        merged.update(headers or {})
        return merged

    async def request(
        self,
        method: str,
        endpoint: str,
        data: Any = None,
        params: Any = None,
        headers: Optional[Dict[str, str]] = None,
        authenticate: bool = True,
    ) -> RestResponse:
        """Make a request; ``endpoint`` may be a path under the API base URL or an absolute URL"""
        method = method.upper()
        if method not in SUPPORTED_METHODS:
            raise ValueError(f"Unsupported method: {method}")

        request_headers = self._headers(headers, authenticate)
        if data is not None and not any(key.lower() == "content-type" for key in request_headers):
            request_headers["content-type"] = "application/json"

        started = time.monotonic()
        async with httpx.AsyncClient(
            base_url=self.config.api_base_url,
            timeout=self.config.http_timeout,
            transport=self.transport,
        ) as client:
            response = await client.request(
                method,
                endpoint,
                params=params,
                headers=request_headers,
                json=data,
            )
            body = parse_body(response)

        duration_ms = int((time.monotonic() - started) * 1000)
        logger.debug(f"{method} {response.request.url} -> {response.status_code} ({duration_ms}ms)")

        return RestResponse(
            status_code=response.status_code,
            url=str(response.request.url),
            body=body,
            headers=dict(response.headers),
            duration_ms=duration_ms,
        )

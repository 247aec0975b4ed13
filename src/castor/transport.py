"""Transport/auth layer: URL routing, headers and HTTP dispatch."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from castor._http import (
    CONTENT_TYPE_JSON,
    HEADER_API_KEY,
    HEADER_AUTHORIZATION,
    HEADER_CONTENT_TYPE,
    HEADER_VERSION,
)
from castor.constants import VERTEX_HOST
from castor.errors import TransportError

if TYPE_CHECKING:
    from castor.config import ProviderConfig
    from castor.schema import Payload

logger = logging.getLogger(__name__)


class Transport:
    """Send serialized payloads to the direct API or to Vertex AI.

    The underlying ``httpx.AsyncClient`` is taken from the config when
    injected; otherwise one is created lazily and owned by this transport.
    """

    def __init__(self, config: ProviderConfig) -> None:
        self.config = config
        self._client: httpx.AsyncClient | None = config.http_client
        self._owns_client = config.http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout_s)
            )
        return self._client

    def resolve_url(self, path: str) -> str:
        """Return the target URL for *path*.

        In delegated mode the path is ignored: Vertex routes every call
        through the model's ``streamRawPredict`` endpoint.
        """
        cfg = self.config
        if cfg.is_delegated:
            location = cfg.vertex_location
            return (
                f"https://{location}-{VERTEX_HOST}/v1/projects/{cfg.vertex_project_id}"
                f"/locations/{location}/publishers/anthropic/models/{cfg.model}"
                ":streamRawPredict"
            )
        return cfg.base_url + path

    def build_headers(self) -> dict[str, str]:
        """Return content-type, auth and version headers for this config."""
        cfg = self.config
        headers = {HEADER_CONTENT_TYPE: CONTENT_TYPE_JSON}
        if cfg.is_delegated:
            headers[HEADER_AUTHORIZATION] = f"Bearer {cfg.api_key}"
        else:
            headers[HEADER_API_KEY] = cfg.api_key or ""
        headers[HEADER_VERSION] = cfg.resolved_version
        return headers

    async def send(self, payload: Payload, path: str) -> httpx.Response:
        """POST *payload* and return the response with its body unread.

        The caller must close the response (``await response.aclose()``).
        """
        try:
            body = payload.model_dump_json().encode("utf-8")
        except Exception as e:
            raise TransportError(f"create request: marshal payload: {e}") from e

        client = self._get_client()
        url = self.resolve_url(path)
        try:
            request = client.build_request(
                "POST", url, content=body, headers=self.build_headers()
            )
        except (httpx.InvalidURL, httpx.UnsupportedProtocol, ValueError) as e:
            raise TransportError(f"create request: {e}") from e

        logger.debug(
            "POST %s (delegated=%s, stream=%s)",
            url,
            self.config.is_delegated,
            bool(getattr(payload, "stream", None)),
        )
        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise TransportError(
                f"send request: {e}",
                hint="Check network connectivity and the configured base_url.",
            ) from e
        logger.debug("Response %s from %s", response.status_code, url)
        return response

    async def aclose(self) -> None:
        """Close the HTTP client if this transport created it."""
        client = self._client
        if client is None or not self._owns_client:
            return
        self._client = None
        await client.aclose()

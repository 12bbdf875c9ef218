"""Elasticsearch REST client for the telemetry index (synchronous httpx).

Only the handful of endpoints the simulator needs:

    GET    /                    ping
    HEAD   /{index}             exists
    PUT    /{index}             create with schema
    DELETE /{index}             delete
    POST   /{index}/_doc        index one document
    POST   /{index}/_bulk       index a batch (NDJSON)

Transport and HTTP errors are raised as SinkError; callers decide whether
that is fatal (startup) or just logged (per-tick emission).
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import TYPE_CHECKING

import httpx
from loguru import logger

from tracksim import __version__
from tracksim.errors import SinkError

if TYPE_CHECKING:
    from tracksim.config import Settings

_USER_AGENT = f"tracksim/{__version__}"


class ElasticsearchSink:
    """Thin wrapper around an ``httpx.Client`` bound to one cluster.

    Usage:
        with ElasticsearchSink("http://localhost:9200", "elastic", "changeme") as sink:
            if sink.ping():
                sink.bulk("tracks", docs)
    """

    def __init__(
        self,
        url: str,
        username: str = "",
        password: str = "",
        api_key: str = "",
        verify_tls: bool = False,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = url
        headers = {"User-Agent": _USER_AGENT}
        auth: httpx.Auth | None = None
        if api_key:
            headers["Authorization"] = f"ApiKey {api_key}"
        elif username:
            auth = httpx.BasicAuth(username, password)
        self._client = httpx.Client(
            base_url=url,
            auth=auth,
            headers=headers,
            verify=verify_tls,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> ElasticsearchSink:
        return cls(
            url=settings.es_url,
            username=settings.es_username,
            password=settings.es_password,
            api_key=settings.es_api_key,
            verify_tls=settings.es_verify_tls,
            timeout=settings.es_timeout,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ElasticsearchSink:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # -- Low level ----------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise SinkError(f"{method} {path} failed: {e}") from e

    @staticmethod
    def _raise_for_status(resp: httpx.Response) -> None:
        if resp.is_error:
            detail = resp.text[:300] if resp.text else resp.reason_phrase
            raise SinkError(
                f"{resp.request.method} {resp.request.url.path} -> {resp.status_code}: {detail}"
            )

    # -- Provisioning -------------------------------------------------------

    def ping(self) -> bool:
        """True if the cluster answers GET / with a 2xx."""
        try:
            resp = self._client.get("/")
        except httpx.HTTPError as e:
            logger.error(f"Cannot reach Elasticsearch at {self.url}: {e}")
            return False
        if not resp.is_success:
            logger.error(f"Elasticsearch at {self.url} answered ping with {resp.status_code}")
            return False
        return True

    def exists(self, name: str) -> bool:
        resp = self._request("HEAD", f"/{name}")
        if resp.status_code == 404:
            return False
        self._raise_for_status(resp)
        return True

    def create(self, name: str, schema: dict) -> None:
        resp = self._request("PUT", f"/{name}", json=schema)
        self._raise_for_status(resp)

    def delete(self, name: str) -> None:
        resp = self._request("DELETE", f"/{name}")
        self._raise_for_status(resp)

    # -- Writes -------------------------------------------------------------

    def index(self, name: str, document: dict) -> None:
        resp = self._request("POST", f"/{name}/_doc", json=document)
        self._raise_for_status(resp)

    def bulk(self, name: str, documents: Sequence[dict]) -> list[str]:
        """Index documents in one request.

        Returns the error reason of every rejected item (empty when all
        succeeded).  A failed request as a whole raises SinkError.
        """
        if not documents:
            return []
        lines: list[str] = []
        for doc in documents:
            lines.append(json.dumps({"create": {}}))
            lines.append(json.dumps(doc))
        body = "\n".join(lines) + "\n"
        resp = self._request(
            "POST",
            f"/{name}/_bulk",
            content=body.encode("utf-8"),
            headers={"Content-Type": "application/x-ndjson"},
        )
        self._raise_for_status(resp)

        data = resp.json()
        if not data.get("errors"):
            return []
        reasons: list[str] = []
        for item in data.get("items", []):
            result = next(iter(item.values()), {})
            error = result.get("error")
            if error:
                reason = error.get("reason", "") if isinstance(error, dict) else str(error)
                reasons.append(f"{result.get('status', '?')}: {reason}")
        return reasons

"""Minimal HTTP client for the service under test."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Sequence
from urllib import error, parse, request

from pydantic import BaseModel, ValidationError

from ag_common.errors import UnexpectedResponseError
from ag_instance.models import CollectionInfo, CollectionInfoResponse, SearchResponse

logger = logging.getLogger(__name__)

DELETE_ACCEPTED_STATUSES = frozenset({200, 404})


def _validate_http_url(url: str) -> str:
    parsed = parse.urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(f"base_url must be an http(s) URL, got: {url}")
    return url


@dataclass
class ServiceClient:
    """Issues the handful of calls the workload needs. Never retries."""

    base_url: str
    timeout_seconds: float = 10.0

    def __post_init__(self) -> None:
        self.base_url = _validate_http_url(self.base_url.rstrip("/"))

    def delete_collection(self, name: str) -> int:
        """Delete ``name``; an already absent collection counts as success."""
        status, _ = self._request(
            "DELETE",
            f"/collections/{parse.quote(name, safe='')}",
            expected_statuses=set(DELETE_ACCEPTED_STATUSES),
        )
        return status

    def create_collection(
        self,
        name: str,
        *,
        vectors: Mapping[str, Any],
        optimizers_config: Mapping[str, Any] | None = None,
        replication_factor: int | None = None,
    ) -> None:
        payload: dict[str, Any] = {"vectors": dict(vectors)}
        if optimizers_config is not None:
            payload["optimizers_config"] = dict(optimizers_config)
        if replication_factor is not None:
            payload["replication_factor"] = replication_factor
        self._request("PUT", f"/collections/{parse.quote(name, safe='')}", payload=payload)

    def upsert_points(
        self,
        name: str,
        points: Sequence[Mapping[str, Any]],
        *,
        wait: bool = True,
    ) -> None:
        """Write points; with ``wait`` the call returns once they are persisted."""
        query = "?wait=true" if wait else ""
        self._request(
            "PUT",
            f"/collections/{parse.quote(name, safe='')}/points{query}",
            payload={"points": [dict(point) for point in points]},
        )

    def search(self, name: str, vector: Sequence[float], *, top: int) -> SearchResponse:
        _, data = self._request(
            "POST",
            f"/collections/{parse.quote(name, safe='')}/points/search",
            payload={"vector": list(vector), "top": top},
        )
        return self._validate(SearchResponse, data, "search")

    def collection_info(self, name: str) -> CollectionInfo:
        _, data = self._request("GET", f"/collections/{parse.quote(name, safe='')}")
        return self._validate(CollectionInfoResponse, data, "collection info").result

    @staticmethod
    def _validate(model: type[BaseModel], data: Any, label: str) -> Any:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise UnexpectedResponseError(
                f"unexpected {label} response shape: {data!r}",
                context={"endpoint": label},
                cause=exc,
            ) from exc

    def _request(
        self,
        method: str,
        path: str,
        payload: Mapping[str, Any] | None = None,
        expected_statuses: set[int] | None = None,
    ) -> tuple[int, Any]:
        expected = expected_statuses or {200}
        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json"}
        data = None
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
            headers["Content-Type"] = "application/json"

        req = request.Request(url, data=data, headers=headers, method=method)
        try:
            with request.urlopen(req, timeout=self.timeout_seconds) as resp:  # nosec B310
                status = resp.status
                body = resp.read().decode("utf-8")
        except error.HTTPError as exc:
            status = exc.code
            body = exc.read().decode("utf-8") if exc.fp else ""
        except (error.URLError, OSError) as exc:
            raise UnexpectedResponseError(
                f"{method} {path} failed: {exc}",
                context={"method": method, "path": path},
                cause=exc,
            ) from exc

        logger.debug("%s %s -> %s", method, path, status)
        if status not in expected:
            raise UnexpectedResponseError(
                f"{method} {path} returned http={status}",
                context={
                    "method": method,
                    "path": path,
                    "status": status,
                    "body": body[:500],
                },
            )
        return status, self._parse_json(body)

    @staticmethod
    def _parse_json(body: str) -> Any:
        if not body:
            return None
        try:
            return json.loads(body)
        except json.JSONDecodeError:
            return None

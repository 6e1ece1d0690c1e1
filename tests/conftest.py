"""Shared fakes for the tide provider and the GridDB Web API."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterator, List, Optional

import httpx
import pytest

from datastore.containers import EntityKind
from datastore.timeseries_store import TimeSeriesStoreClient

GRIDDB_BASE_URL = "http://griddb.test/griddb/v2/cluster/dbs/public"
_PATH_PREFIX = "/griddb/v2/cluster/dbs/public"

CONTAINER_NAMES = {
    EntityKind.water_level: "water_levels",
    EntityKind.monthly_mean: "monthly_means",
    EntityKind.station: "stations",
}


class FakeGridDB:
    """In-memory GridDB Web API; rows are keyed by their first column."""

    def __init__(self, conflict_status: int = 409) -> None:
        self.conflict_status = conflict_status
        self.containers: Dict[str, Dict[str, Any]] = {}
        self.requests: List[httpx.Request] = []
        self.fail_writes = False
        self.fail_queries = False
        self.fail_create = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path[len(_PATH_PREFIX):]
        parts = [part for part in path.split("/") if part]

        if parts == ["containers"] and request.method == "POST":
            return self._create(json.loads(request.content))
        if len(parts) == 3 and parts[0] == "containers" and parts[2] == "info":
            return self._info(parts[1])
        if len(parts) == 3 and parts[0] == "containers" and parts[2] == "rows":
            if request.method == "PUT":
                return self._put_rows(parts[1], json.loads(request.content))
            if request.method == "POST":
                return self._query_rows(parts[1], json.loads(request.content))
        return httpx.Response(404, json={"errorMessage": "not found"})

    def rows(self, name: str) -> List[List[Any]]:
        return list(self.containers[name]["rows"].values())

    def requests_to(self, method: str, suffix: str) -> List[httpx.Request]:
        return [
            request
            for request in self.requests
            if request.method == method and request.url.path.endswith(suffix)
        ]

    def _create(self, schema: Dict[str, Any]) -> httpx.Response:
        if self.fail_create:
            return httpx.Response(500, json={"errorMessage": "internal error"})
        name = schema["container_name"]
        if name in self.containers:
            return httpx.Response(self.conflict_status, json={"errorMessage": "exists"})
        self.containers[name] = {"columns": schema["columns"], "rows": {}}
        return httpx.Response(201)

    def _info(self, name: str) -> httpx.Response:
        if name not in self.containers:
            return httpx.Response(404, json={"errorMessage": "not found"})
        return httpx.Response(200, json={"container_name": name})

    def _put_rows(self, name: str, rows: List[List[Any]]) -> httpx.Response:
        if self.fail_writes:
            return httpx.Response(500, json={"errorMessage": "write failed"})
        container = self.containers.get(name)
        if container is None:
            return httpx.Response(404, json={"errorMessage": "not found"})
        for row in rows:
            container["rows"][row[0]] = row
        return httpx.Response(200, json={"count": len(rows)})

    def _query_rows(self, name: str, body: Dict[str, Any]) -> httpx.Response:
        if self.fail_queries:
            return httpx.Response(503, json={"errorMessage": "unavailable"})
        container = self.containers.get(name)
        if container is None:
            return httpx.Response(404, json={"errorMessage": "not found"})
        columns = [{"name": c["name"], "type": c["type"]} for c in container["columns"]]
        rows = list(container["rows"].values())
        if body.get("sort"):
            column, _, direction = body["sort"].partition(" ")
            index = [c["name"] for c in columns].index(column)
            rows.sort(key=lambda row: row[index], reverse=direction.strip().lower() == "desc")
        rows = rows[: body.get("limit", len(rows))]
        return httpx.Response(
            200,
            json={"columns": columns, "rows": rows, "total": len(rows), "offset": 0, "limit": body.get("limit")},
        )


@pytest.fixture()
def fake_griddb() -> FakeGridDB:
    return FakeGridDB()


def build_store(fake: FakeGridDB, credential: str = "secret", **kwargs: Any) -> TimeSeriesStoreClient:
    return TimeSeriesStoreClient(
        base_url=GRIDDB_BASE_URL,
        container_names=CONTAINER_NAMES,
        credential=credential,
        transport=httpx.MockTransport(fake.handler),
        **kwargs,
    )


@pytest.fixture()
def store(fake_griddb: FakeGridDB) -> Iterator[TimeSeriesStoreClient]:
    client = build_store(fake_griddb)
    yield client
    client.close()


def provider_transport(
    payload: Optional[Any] = None,
    status_code: int = 200,
    text: Optional[str] = None,
    captured: Optional[List[httpx.Request]] = None,
) -> httpx.MockTransport:
    """Tide provider stub answering every request with the same body."""

    def handler(request: httpx.Request) -> httpx.Response:
        if captured is not None:
            captured.append(request)
        if text is not None:
            return httpx.Response(status_code, text=text)
        return httpx.Response(status_code, json=payload if payload is not None else {})

    return httpx.MockTransport(handler)

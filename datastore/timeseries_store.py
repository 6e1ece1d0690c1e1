from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from functools import lru_cache
from threading import Lock
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple

import httpx

from datastore.containers import LAYOUTS, ROW_SERIALIZERS, EntityKind, parse_store_timestamp
from services.errors import MalformedPayloadError, StoreUnavailableError
from settings import get_settings

logger = logging.getLogger(__name__)

_UNKNOWN_TIME = datetime.min.replace(tzinfo=timezone.utc)


class SchemaResult(str, Enum):
    """Outcome of provisioning a container."""

    created = "created"
    already_exists = "already_exists"
    failed = "failed"


class TimeSeriesStoreClient:
    """GridDB Web API client that provisions containers, writes and queries rows."""

    def __init__(
        self,
        base_url: str,
        container_names: Mapping[EntityKind, str],
        credential: str = "",
        auth_scheme: str = "Basic",
        timeout: float = 30.0,
        row_limit: int = 20000,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.container_names = dict(container_names)
        self.row_limit = row_limit
        self.timeout = timeout
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if credential:
            headers["Authorization"] = f"{auth_scheme} {credential}"
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )
        self._provisioned: Set[EntityKind] = set()
        self._provisioned_lock = Lock()

    def close(self) -> None:
        self._client.close()

    def container_name(self, kind: EntityKind) -> str:
        return self.container_names[kind]

    def ensure_schema(self, kind: EntityKind) -> SchemaResult:
        """Provision the container for ``kind``; safe to call repeatedly."""
        with self._provisioned_lock:
            if kind in self._provisioned:
                return SchemaResult.already_exists

        name = self.container_name(kind)
        payload = LAYOUTS[kind].schema_payload(name)
        result = self._create_container(name, payload)

        log_extra = {"container": name, "schema_result": result.value}
        if result is SchemaResult.failed:
            logger.error("Failed to provision container", extra=log_extra)
            return result

        logger.debug("Container ready", extra=log_extra)
        with self._provisioned_lock:
            self._provisioned.add(kind)
        return result

    def write_batch(self, kind: EntityKind, records: Sequence[Any]) -> bool:
        """Upsert ``records`` in a single request; ``False`` when nothing was written."""
        if not records:
            return False

        name = self.container_name(kind)
        self.ensure_schema(kind)

        serialize = ROW_SERIALIZERS[kind]
        try:
            rows = [serialize(record) for record in records]
            body = json.dumps(rows, allow_nan=False)
            response = self._client.put(f"/containers/{name}/rows", content=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Batch write rejected by store",
                extra={
                    "container": name,
                    "record_count": len(records),
                    "status_code": exc.response.status_code,
                    "reason": exc.response.text.strip() or None,
                },
            )
            return False
        except (httpx.HTTPError, TypeError, ValueError) as exc:
            logger.error(
                "Batch write failed",
                extra={"container": name, "record_count": len(records), "reason": str(exc)},
            )
            return False

        logger.info("Stored batch", extra={"container": name, "record_count": len(rows)})
        return True

    def query(
        self,
        kind: EntityKind,
        station_id: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """Fetch up to ``row_limit`` rows and filter them to a station and window.

        The store returns rows unfiltered; filtering by ``station_id`` and by the
        container's time column happens here, using the column names the store
        reports alongside the rows. Results are ordered by the time column.
        """
        name = self.container_name(kind)
        payload = self._fetch_rows(kind, name)

        columns = payload.get("columns")
        rows = payload.get("rows")
        if not isinstance(columns, list) or not isinstance(rows, list):
            raise MalformedPayloadError(f"Unexpected row payload for container {name!r}")
        try:
            column_names = [str(column["name"]) for column in columns]
        except (KeyError, TypeError) as exc:
            raise MalformedPayloadError(f"Unexpected column description for {name!r}") from exc

        time_column = LAYOUTS[kind].time_column
        matched: List[Tuple[Optional[datetime], Dict[str, Any]]] = []
        for row in rows:
            if not isinstance(row, list) or len(row) != len(column_names):
                raise MalformedPayloadError(f"Row width does not match columns for {name!r}")
            record = dict(zip(column_names, row))
            if station_id is not None and record.get("station_id") != station_id:
                continue
            moment = parse_store_timestamp(record.get(time_column)) if time_column else None
            if since is not None and time_column is not None:
                if moment is None or moment < since:
                    continue
            matched.append((moment, record))

        if time_column is not None:
            matched.sort(key=lambda item: item[0] or _UNKNOWN_TIME)
        return [record for _, record in matched]

    def _fetch_rows(self, kind: EntityKind, name: str) -> Dict[str, Any]:
        body: Dict[str, Any] = {"limit": self.row_limit}
        time_column = LAYOUTS[kind].time_column
        if time_column is not None:
            # The row cap keeps the newest rows.
            body["sort"] = f"{time_column} desc"
        try:
            response = self._client.post(f"/containers/{name}/rows", json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise StoreUnavailableError(
                f"HTTP error {exc.response.status_code} querying {name!r}"
            ) from exc
        except httpx.HTTPError as exc:
            raise StoreUnavailableError(f"Store request failed for {name!r}: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedPayloadError(f"Invalid JSON from store for {name!r}") from exc
        if not isinstance(payload, dict):
            raise MalformedPayloadError(f"Expected a JSON object from store for {name!r}")
        return payload

    def _create_container(self, name: str, payload: Dict[str, Any]) -> SchemaResult:
        try:
            response = self._client.post("/containers", json=payload)
        except httpx.HTTPError as exc:
            logger.warning(
                "Container provisioning request failed",
                extra={"container": name, "reason": str(exc)},
            )
            return SchemaResult.failed

        if response.is_success:
            return SchemaResult.created
        if response.status_code == httpx.codes.CONFLICT:
            return SchemaResult.already_exists
        return SchemaResult.already_exists if self._container_exists(name) else SchemaResult.failed

    def _container_exists(self, name: str) -> bool:
        try:
            response = self._client.get(f"/containers/{name}/info")
        except httpx.HTTPError:
            return False
        return response.is_success


@lru_cache
def build_default_store() -> TimeSeriesStoreClient:
    settings = get_settings()
    return TimeSeriesStoreClient(
        base_url=settings.griddb_url,
        container_names={
            EntityKind.water_level: settings.water_level_container,
            EntityKind.monthly_mean: settings.monthly_mean_container,
            EntityKind.station: settings.stations_container,
        },
        credential=settings.griddb_api_key,
        auth_scheme=settings.griddb_auth_scheme,
        timeout=settings.http_timeout,
        row_limit=settings.query_limit,
    )

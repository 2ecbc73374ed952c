from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

from apiload.config import HttpMethod

JSON_CONTENT_TYPE = "application/json"
CREDENTIAL_PARAM = "bootKey"


@dataclass(frozen=True, slots=True)
class RequestPayload:
    measurement_id: str
    timestamp_utc: datetime
    worker: int
    index: int
    credential: str | None = None

    @classmethod
    def create(cls, worker_id: int, index: int, credential: str | None) -> RequestPayload:
        return cls(
            measurement_id=f"{worker_id:03d}-{index:05d}",
            timestamp_utc=datetime.now(timezone.utc),
            worker=worker_id,
            index=index,
            credential=credential,
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "measurementId": self.measurement_id,
            "timestampUtc": self.timestamp_utc.isoformat(),
            "inputs": {"worker": self.worker, "index": self.index},
            CREDENTIAL_PARAM: self.credential,
        }


@dataclass(frozen=True, slots=True)
class BuiltRequest:
    url: str
    body: str | None = None
    content_type: str | None = None


def build_request(
    method: HttpMethod | str,
    base_url: str,
    worker_id: int,
    index: int,
    credential: str | None = None,
    body: str | None = None,
) -> BuiltRequest:
    if not _carries_body(method):
        return BuiltRequest(url=append_query(base_url, CREDENTIAL_PARAM, credential))
    if body:
        return BuiltRequest(url=base_url, body=body, content_type=JSON_CONTENT_TYPE)
    try:
        payload = json.dumps(RequestPayload.create(worker_id, index, credential).to_json())
    except (TypeError, ValueError):
        return BuiltRequest(url=base_url)
    return BuiltRequest(url=base_url, body=payload, content_type=JSON_CONTENT_TYPE)


def append_query(url: str, name: str, value: str | None) -> str:
    if value is None or not value.strip():
        return url
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}{quote(name, safe='')}={quote(value, safe='')}"


def _carries_body(method: HttpMethod | str) -> bool:
    name = method.value if isinstance(method, HttpMethod) else str(method).upper()
    try:
        return HttpMethod(name).carries_body
    except ValueError:
        return False

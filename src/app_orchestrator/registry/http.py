"""
HTTP capability registry.

Looks capabilities up from a PuppetDB shaped resources endpoint with no third
party deps.

Query
GET {base_url}/v3/resources?query=
  ["and", ["=", "type", Kind], ["=", "title", title], ["=", "tag", "producer:<environment>"]]

The endpoint answers with a json list of resource records. Records without
parameters are ignored. One record is the capability, none means the
capability was not published, more than one raises AmbiguousCapability.

Transport and decoding errors are raised as CapabilityLookupFailed. Retry and
timeout policy belong to the http client, not to the compiler.
"""

from __future__ import annotations

import json
import logging
from http.client import HTTPException
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.error import URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from app_orchestrator.core.errors import AmbiguousCapability, CapabilityLookupFailed
from app_orchestrator.core.types import CapabilityRef, CapabilityValue
from app_orchestrator.registry.base import CapabilityRegistry

log = logging.getLogger("app_orchestrator.registry.http")


class HttpClient(Protocol):
    """Simple http client interface for testability."""

    def get_json(self, url: str, headers: dict[str, str]) -> Any:
        """Return parsed json for the given url."""


@dataclass
class UrllibHttpClient(HttpClient):
    """Default http client using urllib."""

    timeout_seconds: int = 10

    def get_json(self, url: str, headers: dict[str, str]) -> Any:
        req = Request(url, headers=headers, method="GET")
        with urlopen(req, timeout=self.timeout_seconds) as resp:
            body = resp.read().decode("utf-8")
        return json.loads(body)


def build_query(environment: str, cap: CapabilityRef) -> list[Any]:
    kind = cap.kind[:1].upper() + cap.kind[1:]
    return [
        "and",
        ["=", "type", kind],
        ["=", "title", cap.name],
        ["=", "tag", f"producer:{environment}"],
    ]


@dataclass(frozen=True)
class HttpCapabilityRegistry(CapabilityRegistry):
    """
    Registry backed by an http resources endpoint.

    base_url defaults to a local PuppetDB.
    timeout_seconds is handed to the default urllib client.
    http can be replaced by a fake in tests.
    """

    base_url: str = "http://localhost:8080"
    timeout_seconds: int = 10
    http: HttpClient | None = None

    def __post_init__(self) -> None:
        if self.http is None:
            object.__setattr__(self, "http", UrllibHttpClient(timeout_seconds=self.timeout_seconds))

    def find(self, environment: str, cap: CapabilityRef) -> CapabilityValue | None:
        query = json.dumps(build_query(environment, cap))
        url = f"{self.base_url}/v3/resources?query={quote(query)}"
        log.info("Capability lookup %s: %s", cap.ref, query)

        try:
            data = self.http.get_json(url, headers={"Accept": "application/json"})
        except (URLError, OSError, HTTPException, ValueError) as exc:
            raise CapabilityLookupFailed(cap.ref, str(exc), backend=self.base_url) from exc

        if not isinstance(data, list):
            raise CapabilityLookupFailed(
                cap.ref, f"expected an Array but got {data!r}", backend=self.base_url
            )

        records = [r for r in data if isinstance(r, dict) and r.get("parameters")]
        log.info("Capability lookup %s: response %s", cap.ref, records)

        if len(records) > 1:
            raise AmbiguousCapability(cap.ref, len(records))
        if not records:
            return None

        record = records[0]
        params = record["parameters"]
        if not isinstance(params, dict):
            raise CapabilityLookupFailed(cap.ref, f"parameters is not an object: {params!r}", backend=self.base_url)

        return CapabilityValue(
            kind=str(record.get("type", cap.kind)),
            name=str(record.get("title", cap.name)),
            parameters={str(k): v for k, v in params.items() if k != "name"},
        )

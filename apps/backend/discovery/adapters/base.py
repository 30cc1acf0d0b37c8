"""Source adapter contract and shared HTTP plumbing."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, FrozenSet, List, Optional

import httpx

from discovery.constants import DEFAULT_USER_AGENT
from discovery.exceptions import AdapterError
from discovery.models import POI, Origin, POISource, POIType
from discovery.utils.geo import haversine_m


class SourceAdapter(ABC):
    """Uniform contract over one external place provider.

    ``fetch`` must not touch engine state and must be safe to run
    concurrently with other adapters. It either returns the complete list
    or raises; it never returns partial results alongside an error.
    ``language`` requests localized content; None means the adapter default.
    """

    source: POISource

    @abstractmethod
    async def fetch(
        self,
        origin: Origin,
        radius_m: int,
        enabled_types: FrozenSet[POIType],
        *,
        language: Optional[str] = None,
    ) -> List[POI]:
        pass

    async def aclose(self) -> None:
        return None


class HttpSourceAdapter(SourceAdapter):
    """Base for adapters backed by a JSON HTTP API."""

    timeout_seconds: float = 15.0

    def __init__(
        self,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.user_agent = user_agent
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout_seconds,
            transport=self._transport,
            headers={"User-Agent": self.user_agent},
        )

    def _decode(self, response: httpx.Response) -> Dict[str, Any]:
        if response.status_code == 429:
            raise AdapterError(
                self.source.value, "rate limit exceeded", detail={"status_code": 429}
            )
        if response.status_code >= 400:
            raise AdapterError(
                self.source.value,
                f"HTTP {response.status_code}",
                detail={"status_code": response.status_code, "body": response.text[:200]},
            )
        try:
            data = response.json()
        except ValueError as e:
            raise AdapterError(self.source.value, f"invalid JSON payload: {e}") from e
        if not isinstance(data, dict):
            raise AdapterError(self.source.value, "unexpected payload shape")
        return data


def within_radius(
    origin: Origin, latitude: float, longitude: float, radius_m: int
) -> Optional[float]:
    """Distance from the origin, or None when the point lies outside the radius."""
    distance = haversine_m(origin.latitude, origin.longitude, latitude, longitude)
    if distance > radius_m:
        return None
    return distance

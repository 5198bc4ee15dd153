"""Mapbox geocoding client used to turn search text into an origin point."""

import logging
import os
from typing import Any, List, Optional
from urllib.parse import quote

import httpx

from app.models import GeocodeCandidate

logger = logging.getLogger(__name__)

MAPBOX_BASE_URL = os.getenv("MAPBOX_BASE_URL", "https://api.mapbox.com")
MAPBOX_COUNTRY = os.getenv("MAPBOX_COUNTRY", "US")


class GeocodingError(Exception):
    """Raised when a lookup cannot be completed or returns nothing usable."""


class GeocodingNotConfiguredError(GeocodingError):
    """Raised when no Mapbox token is available."""


def _parse_feature(feature: Any) -> Optional[GeocodeCandidate]:
    if not isinstance(feature, dict):
        return None
    center = feature.get("center")
    if not isinstance(center, (list, tuple)) or len(center) < 2:
        return None
    try:
        # Mapbox centers are [longitude, latitude].
        lng, lat = float(center[0]), float(center[1])
    except (TypeError, ValueError):
        return None
    label = str(feature.get("place_name") or feature.get("text") or f"{lat:.4f}, {lng:.4f}")
    return GeocodeCandidate(label=label, lat=lat, lng=lng)


class MapboxGeocoder:
    def __init__(
        self,
        token: Optional[str] = None,
        http: Optional[httpx.AsyncClient] = None,
        base_url: str = MAPBOX_BASE_URL,
    ) -> None:
        self.token = (token if token is not None else os.getenv("MAPBOX_TOKEN", "")).strip()
        self.http = http or httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(connect=5.0, read=10.0, write=5.0, pool=5.0),
        )

    @property
    def configured(self) -> bool:
        return bool(self.token)

    async def aclose(self) -> None:
        await self.http.aclose()

    async def _lookup(self, path_query: str, **params: Any) -> List[GeocodeCandidate]:
        if not self.configured:
            raise GeocodingNotConfiguredError("Geocoding is not configured")
        params["access_token"] = self.token
        try:
            response = await self.http.get(
                f"/geocoding/v5/mapbox.places/{quote(path_query, safe=',')}.json",
                params=params,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise GeocodingError(f"Geocoding request failed with status {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise GeocodingError(f"Geocoding request failed: {exc}") from exc
        except ValueError as exc:
            raise GeocodingError("Geocoding response was not valid JSON") from exc

        features = payload.get("features") if isinstance(payload, dict) else None
        candidates = [c for c in (_parse_feature(f) for f in features or []) if c is not None]
        return candidates

    async def forward(self, query: str, limit: int = 5) -> List[GeocodeCandidate]:
        text = query.strip()
        if not text:
            return []
        return await self._lookup(text, country=MAPBOX_COUNTRY, limit=limit)

    async def reverse(self, lat: float, lng: float) -> Optional[GeocodeCandidate]:
        candidates = await self._lookup(f"{lng},{lat}")
        return candidates[0] if candidates else None

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Protocol

from app.models import GeoPoint, GeocodeCandidate, Origin, SearchRequest
from app.services.geocoder import GeocodingError, GeocodingNotConfiguredError

logger = logging.getLogger(__name__)

LOCATION_NOT_FOUND_MESSAGE = "We couldn't find that location. Showing results from everywhere."
GEOCODING_FAILED_MESSAGE = "Location lookup is unavailable right now. Showing results from everywhere."
POSITION_UNAVAILABLE_MESSAGE = "Location access is unavailable. Showing results from everywhere."


class PositionUnavailableError(Exception):
    """The device position sensor was denied or could not produce a fix."""


class Geocoder(Protocol):
    async def forward(self, query: str, limit: int = 5) -> List[GeocodeCandidate]: ...

    async def reverse(self, lat: float, lng: float) -> Optional[GeocodeCandidate]: ...


PositionSensor = Callable[[], Awaitable[GeoPoint]]


@dataclass
class ResolvedLocation:
    origin: Optional[Origin] = None
    messages: List[str] = field(default_factory=list)


def _coordinate_label(point: GeoPoint) -> str:
    return f"{point.lat:.4f}, {point.lng:.4f}"


class LocationResolver:
    """Picks the search origin: explicit coordinates, then address text, then the device sensor."""

    def __init__(self, geocoder: Optional[Geocoder] = None) -> None:
        self.geocoder = geocoder

    async def resolve(
        self,
        request: SearchRequest,
        position_sensor: Optional[PositionSensor] = None,
    ) -> ResolvedLocation:
        if request.location is not None:
            label = (request.address or "").strip() or _coordinate_label(request.location)
            return ResolvedLocation(
                origin=Origin(lat=request.location.lat, lng=request.location.lng, label=label, source="request")
            )

        address = (request.address or "").strip()
        if address:
            return await self._resolve_address(address)

        if request.device_location is not None:
            return await self._resolve_device(request.device_location)

        if position_sensor is not None:
            try:
                point = await position_sensor()
            except PositionUnavailableError:
                logger.info("Position sensor unavailable; searching without origin")
                return ResolvedLocation(messages=[POSITION_UNAVAILABLE_MESSAGE])
            except Exception:
                logger.exception("Position sensor failed; searching without origin")
                return ResolvedLocation(messages=[POSITION_UNAVAILABLE_MESSAGE])
            return await self._resolve_device(point)

        return ResolvedLocation()

    async def _resolve_address(self, address: str) -> ResolvedLocation:
        if self.geocoder is None:
            return ResolvedLocation(messages=[GEOCODING_FAILED_MESSAGE])
        try:
            candidates = await self.geocoder.forward(address, limit=1)
        except GeocodingNotConfiguredError:
            logger.warning("Address search skipped: MAPBOX_TOKEN not set")
            return ResolvedLocation(messages=[GEOCODING_FAILED_MESSAGE])
        except GeocodingError:
            logger.exception("Forward geocoding failed for %r", address)
            return ResolvedLocation(messages=[GEOCODING_FAILED_MESSAGE])
        if not candidates:
            return ResolvedLocation(messages=[LOCATION_NOT_FOUND_MESSAGE])
        first = candidates[0]
        return ResolvedLocation(origin=Origin(lat=first.lat, lng=first.lng, label=first.label, source="geocoded"))

    async def _resolve_device(self, point: GeoPoint) -> ResolvedLocation:
        label = _coordinate_label(point)
        if self.geocoder is not None:
            try:
                match = await self.geocoder.reverse(point.lat, point.lng)
            except GeocodingError:
                # Coordinates are still usable without a readable label.
                logger.info("Reverse geocoding failed; using coordinate label")
                match = None
            if match is not None:
                label = match.label
        return ResolvedLocation(origin=Origin(lat=point.lat, lng=point.lng, label=label, source="device"))

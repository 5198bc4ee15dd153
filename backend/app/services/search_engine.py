"""Filtering, enrichment and ordering of search candidates.

Everything here is a pure function of its inputs so that identical
candidate snapshots always produce identical result lists.
"""

import math
import re
from typing import Iterable, List, Optional, Sequence, Tuple

from app.models import (
    SERVICE_TYPES,
    CandidateSet,
    GeoPoint,
    JobPost,
    MapMarker,
    MapView,
    ProviderCandidate,
    RatingSummary,
    Review,
    SearchFilters,
    SearchResult,
)

EARTH_RADIUS_KM = 6371.0
KM_TO_MILES = 0.621371

DEFAULT_PROVIDER_RATE = "25"
DEFAULT_PROVIDER_RATE_TYPE = "per_hour"
DEFAULT_MAP_CENTER = GeoPoint(lat=40.7128, lng=-74.0060)

SORT_ORDERS = {"none", "highToLow", "lowToHigh"}

SERVICE_LABELS = {
    "walk": "Dog Walking",
    "daycare": "Daycare",
    "boarding": "Boarding",
    "drop-in": "Drop-in Visits",
    "training": "Training",
    "house-sitting": "House Sitting",
}

SERVICE_EMOJI = {
    "walk": "🦮",
    "daycare": "🏠",
    "boarding": "🛏️",
}

RATE_TYPE_SUFFIX = {
    "per_hour": "/hour",
    "hour": "/hour",
    "per_day": "/day",
    "day": "/day",
    "fixed": " fixed",
}

_LEADING_NUMBER = re.compile(r"^\s*\$?\s*([-+]?(?:\d+\.?\d*|\.\d+))")


def haversine_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c * KM_TO_MILES


def parse_price(value: Optional[str]) -> float:
    """Numeric value of a rate string; anything unparseable counts as zero."""
    if value is None:
        return 0.0
    match = _LEADING_NUMBER.match(str(value))
    if not match:
        return 0.0
    number = float(match.group(1))
    return number if math.isfinite(number) else 0.0


def _has_price(value: Optional[str]) -> bool:
    return value is not None and _LEADING_NUMBER.match(str(value)) is not None


def summarize_ratings(reviews: Sequence[Review]) -> RatingSummary:
    if not reviews:
        return RatingSummary()
    total = len(reviews)
    average = sum(review.rating for review in reviews) / total
    display = round(average, 1)
    noun = "review" if total == 1 else "reviews"
    return RatingSummary(
        average_rating=average,
        total_reviews=total,
        display_rating=display,
        label=f"{display:.1f} ({total} {noun})",
    )


def enabled_services(candidate: ProviderCandidate) -> List[str]:
    return [service for service, enabled in candidate.profile.services.items() if enabled is True]


def headline_rate(candidate: ProviderCandidate) -> Tuple[str, str]:
    """Cheapest rate among the provider's enabled services.

    Falls back to the flat profile rate, then to the platform default.
    Ties keep the canonical service order.
    """
    profile = candidate.profile
    rate_type = profile.rate_type or DEFAULT_PROVIDER_RATE_TYPE
    enabled = set(enabled_services(candidate))
    priced = [
        (parse_price(profile.rates[service]), index, profile.rates[service])
        for index, service in enumerate(SERVICE_TYPES)
        if service in enabled and _has_price(profile.rates.get(service))
    ]
    if priced:
        _, _, rate = min(priced, key=lambda item: (item[0], item[1]))
        return rate.strip(), rate_type
    if _has_price(profile.rate):
        return str(profile.rate).strip(), rate_type
    return DEFAULT_PROVIDER_RATE, rate_type


def price_label(rate: str, rate_type: str) -> str:
    if not rate:
        return "Rate on request"
    amount = rate.lstrip("$")
    return f"${amount}{RATE_TYPE_SUFFIX.get(rate_type, '/' + rate_type if rate_type else '')}"


def job_to_result(job: JobPost, distance: Optional[float] = None) -> SearchResult:
    return SearchResult(
        id=job.id,
        is_provider=False,
        display_name=job.owner_name or "Anonymous",
        service_label=SERVICE_LABELS.get(job.service_type, job.service_type),
        service_types=[job.service_type],
        description=job.description,
        location=job.location,
        price_label=price_label(job.rate, job.rate_type),
        price_value=parse_price(job.rate),
        rate=job.rate,
        rate_type=job.rate_type,
        photo_url=job.owner_photo_url,
        distance_miles=distance,
        breeds=list(job.breeds),
        details_path=f"/jobs/{job.id}",
    )


def provider_to_result(candidate: ProviderCandidate, distance: Optional[float] = None) -> SearchResult:
    profile = candidate.profile
    services = enabled_services(candidate)
    rate, rate_type = headline_rate(candidate)
    rating = summarize_ratings(candidate.reviews)
    return SearchResult(
        id=profile.uid,
        is_provider=True,
        display_name=profile.name or "Provider",
        service_label=", ".join(SERVICE_LABELS.get(s, s) for s in services),
        service_types=services,
        description=profile.bio,
        location=profile.location,
        price_label=price_label(rate, rate_type),
        price_value=parse_price(rate),
        rate=rate,
        rate_type=rate_type,
        photo_url=profile.photo_url,
        rating=rating.average_rating,
        total_reviews=rating.total_reviews,
        rating_label=rating.label,
        distance_miles=distance,
        breeds=list(profile.accepted_breeds),
        details_path=f"/providers/{profile.uid}",
    )


def breeds_match(candidate_breeds: Iterable[str], selected: Sequence[str]) -> bool:
    if not selected:
        return True
    wanted = set(selected)
    return any(breed in wanted for breed in candidate_breeds)


def job_matches_service(job: JobPost, service_type: Optional[str]) -> bool:
    return not service_type or job.service_type == service_type


def provider_matches_service(candidate: ProviderCandidate, service_type: Optional[str]) -> bool:
    return not service_type or candidate.profile.services.get(service_type) is True


def _matches_query(result: SearchResult, query: str) -> bool:
    searchable = " ".join(
        [
            result.display_name,
            result.description,
            result.service_label,
            " ".join(result.service_types),
            result.location.address or "",
        ]
    ).lower()
    return query in searchable


def _within_radius(
    location: Optional[GeoPoint],
    origin: Optional[GeoPoint],
    radius: Optional[float],
) -> Tuple[bool, Optional[float]]:
    if location is None:
        return False, None
    if origin is None:
        return True, None
    distance = haversine_miles(origin.lat, origin.lng, location.lat, location.lng)
    if radius is not None and distance > radius:
        return False, distance
    return True, distance


def build_results(
    candidates: CandidateSet,
    filters: SearchFilters,
    origin: Optional[GeoPoint] = None,
) -> List[SearchResult]:
    """Apply service, breed, radius, result-type and text filters, then normalize.

    Jobs come first, then providers, each in fetch order.
    """
    results: List[SearchResult] = []
    query = (filters.query or "").strip().lower()

    if filters.result_type in ("all", "jobs"):
        for job in candidates.jobs:
            if not job_matches_service(job, filters.service_type):
                continue
            if not breeds_match(job.breeds, filters.breeds):
                continue
            keep, distance = _within_radius(job.location, origin, filters.distance_miles)
            if not keep:
                continue
            results.append(job_to_result(job, distance))

    if filters.result_type in ("all", "providers"):
        for candidate in candidates.providers:
            if candidate.profile.role.host is not True:
                continue
            if not provider_matches_service(candidate, filters.service_type):
                continue
            if not breeds_match(candidate.profile.accepted_breeds, filters.breeds):
                continue
            keep, distance = _within_radius(candidate.profile.location, origin, filters.distance_miles)
            if not keep:
                continue
            results.append(provider_to_result(candidate, distance))

    if query:
        results = [result for result in results if _matches_query(result, query)]
    return results


def sort_results(results: Sequence[SearchResult], sort_order: str = "none") -> List[SearchResult]:
    if sort_order not in SORT_ORDERS:
        raise ValueError(f"Invalid sort order {sort_order!r}. Allowed: none, highToLow, lowToHigh")
    if sort_order == "lowToHigh":
        return sorted(results, key=lambda r: r.price_value)
    if sort_order == "highToLow":
        # Negated key rather than reverse=True keeps ties in input order.
        return sorted(results, key=lambda r: -r.price_value)
    return list(results)


def zoom_for_distance(distance_miles: float) -> int:
    if distance_miles <= 5:
        return 12
    if distance_miles <= 10:
        return 11
    if distance_miles <= 25:
        return 10
    return 9


def marker_title(result: SearchResult) -> str:
    primary = result.service_types[0] if result.service_types else ""
    return f"{SERVICE_EMOJI.get(primary, '🐕')} {result.display_name}"


def map_view(
    results: Sequence[SearchResult],
    origin: Optional[GeoPoint] = None,
    distance_miles: Optional[float] = None,
) -> MapView:
    if origin is not None:
        center = GeoPoint(lat=origin.lat, lng=origin.lng)
        zoom = zoom_for_distance(distance_miles) if distance_miles is not None else 10
    elif results:
        center = GeoPoint(lat=results[0].location.lat, lng=results[0].location.lng)
        zoom = 10
    else:
        center = DEFAULT_MAP_CENTER
        zoom = 8
    markers = [
        MapMarker(
            id=result.id,
            position=GeoPoint(lat=result.location.lat, lng=result.location.lng),
            title=marker_title(result),
            service_label=result.service_label,
            description=result.description,
            price_label=result.price_label,
            is_provider=result.is_provider,
            details_path=result.details_path,
        )
        for result in results
    ]
    return MapView(center=center, zoom=zoom, markers=markers)

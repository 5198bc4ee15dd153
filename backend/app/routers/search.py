from typing import List, Optional

from fastapi import APIRouter, Header, HTTPException, Query
from pydantic import ValidationError

from app.auth import resolve_request_user
from app.data import ALL_BREEDS, BREED_CATEGORIES
from app.models import BreedCatalog, GeoPoint, MapView, ResultType, SearchRequest, SearchResponse, SortOrder
from app.services.candidate_fetcher import CandidateFetcher
from app.services.document_store import document_store
from app.services.geocoder import MapboxGeocoder
from app.services.location_resolver import LocationResolver
from app.services.search_engine import map_view
from app.services.search_pipeline import SearchContext, SearchPipeline

router = APIRouter(prefix="/search", tags=["search"])

geocoder = MapboxGeocoder()
pipeline = SearchPipeline(
    resolver=LocationResolver(geocoder=geocoder),
    fetcher=CandidateFetcher(store=document_store),
)


def _point(lat: Optional[float], lng: Optional[float], field: str) -> Optional[GeoPoint]:
    if lat is None and lng is None:
        return None
    if lat is None or lng is None:
        raise HTTPException(status_code=400, detail=f"{field} needs both latitude and longitude")
    return GeoPoint(lat=lat, lng=lng)


def _build_request(
    q: Optional[str],
    service_type: Optional[str],
    breeds: List[str],
    lat: Optional[float],
    lng: Optional[float],
    address: Optional[str],
    device_lat: Optional[float],
    device_lng: Optional[float],
    distance_miles: Optional[float],
    result_type: str,
    sort_order: str,
) -> SearchRequest:
    try:
        return SearchRequest(
            query=q,
            # The "All Services" option submits an empty value.
            service_type=(service_type or "").strip() or None,
            breeds=[breed.strip() for breed in breeds if breed.strip()],
            location=_point(lat, lng, "location"),
            address=address,
            device_location=_point(device_lat, device_lng, "device location"),
            distance_miles=distance_miles,
            result_type=result_type,
            sort_order=sort_order,
        )
    except ValidationError as exc:
        first = exc.errors()[0]
        raise HTTPException(status_code=400, detail=str(first.get("msg", "Invalid search parameters")))


@router.get("", response_model=SearchResponse)
async def search(
    q: Optional[str] = Query(default=None),
    service_type: Optional[str] = Query(default=None),
    breeds: List[str] = Query(default=[]),
    lat: Optional[float] = Query(default=None),
    lng: Optional[float] = Query(default=None),
    address: Optional[str] = Query(default=None),
    device_lat: Optional[float] = Query(default=None),
    device_lng: Optional[float] = Query(default=None),
    distance_miles: Optional[float] = Query(default=None),
    result_type: ResultType = Query(default="all"),
    sort_order: SortOrder = Query(default="none"),
    authorization: Optional[str] = Header(default=None),
):
    request = _build_request(
        q, service_type, breeds, lat, lng, address, device_lat, device_lng, distance_miles, result_type, sort_order
    )
    context = SearchContext(viewer_id=resolve_request_user(authorization))
    return await pipeline.run(request, context)


@router.get("/map", response_model=MapView)
async def search_map(
    q: Optional[str] = Query(default=None),
    service_type: Optional[str] = Query(default=None),
    breeds: List[str] = Query(default=[]),
    lat: Optional[float] = Query(default=None),
    lng: Optional[float] = Query(default=None),
    address: Optional[str] = Query(default=None),
    device_lat: Optional[float] = Query(default=None),
    device_lng: Optional[float] = Query(default=None),
    distance_miles: Optional[float] = Query(default=None),
    result_type: ResultType = Query(default="all"),
    sort_order: SortOrder = Query(default="none"),
    authorization: Optional[str] = Header(default=None),
):
    request = _build_request(
        q, service_type, breeds, lat, lng, address, device_lat, device_lng, distance_miles, result_type, sort_order
    )
    context = SearchContext(viewer_id=resolve_request_user(authorization))
    response = await pipeline.run(request, context)
    view = map_view(response.results, origin=response.origin, distance_miles=request.distance_miles)
    return view.model_copy(update={"messages": response.messages, "error": response.error})


@router.get("/breeds", response_model=BreedCatalog)
def list_breeds():
    return BreedCatalog(categories=BREED_CATEGORIES, all_breeds=ALL_BREEDS)

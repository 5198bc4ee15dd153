import math
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator


ServiceType = Literal["walk", "daycare", "boarding", "drop-in", "training", "house-sitting"]
RateType = Literal["per_hour", "per_day", "fixed"]
ResultType = Literal["all", "jobs", "providers"]
SortOrder = Literal["none", "highToLow", "lowToHigh"]

SERVICE_TYPES: tuple[str, ...] = ("walk", "daycare", "boarding", "drop-in", "training", "house-sitting")


def _default_for_null(cls: Any, value: Any, info: ValidationInfo) -> Any:
    # Stored documents often carry explicit nulls where the form left a field blank.
    if value is None:
        return cls.model_fields[info.field_name].get_default(call_default_factory=True)
    return value


def _rate_text(value: Any) -> Any:
    # Legacy documents store rates as numbers.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class GeoPoint(BaseModel):
    lat: float
    lng: float

    @field_validator("lat")
    @classmethod
    def _check_lat(cls, value: float) -> float:
        if not math.isfinite(value) or not -90.0 <= value <= 90.0:
            raise ValueError("lat must be between -90 and 90")
        return value

    @field_validator("lng")
    @classmethod
    def _check_lng(cls, value: float) -> float:
        if not math.isfinite(value) or not -180.0 <= value <= 180.0:
            raise ValueError("lng must be between -180 and 180")
        return value


class Location(GeoPoint):
    address: Optional[str] = None


class UserRole(BaseModel):
    owner: bool = False
    host: bool = False


class JobPost(BaseModel):
    id: str
    owner_uid: Optional[str] = None
    owner_name: str = "Anonymous"
    service_type: ServiceType
    description: str = ""
    location: Optional[Location] = None
    rate: str = ""
    rate_type: str = "per_hour"
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    breeds: List[str] = Field(default_factory=list)
    created_at: Optional[str] = None
    status: Literal["open", "matched", "closed"] = "open"
    owner_photo_url: Optional[str] = None

    @field_validator("owner_name", "description", "rate_type", "breeds", "status", mode="before")
    @classmethod
    def _null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        return _default_for_null(cls, value, info)

    @field_validator("rate", mode="before")
    @classmethod
    def _rate_as_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        return _rate_text(value)


class ProviderProfile(BaseModel):
    uid: str
    name: str = ""
    bio: str = ""
    role: UserRole = Field(default_factory=UserRole)
    services: Dict[str, bool] = Field(default_factory=dict)
    accepted_breeds: List[str] = Field(default_factory=list)
    location: Optional[Location] = None
    rate: Optional[str] = None
    rate_type: Optional[str] = None
    rates: Dict[str, str] = Field(default_factory=dict)
    photo_url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("name", "bio", "role", "services", "accepted_breeds", "rates", mode="before")
    @classmethod
    def _null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        return _default_for_null(cls, value, info)

    @field_validator("rate", mode="before")
    @classmethod
    def _rate_as_text(cls, value: Any) -> Any:
        return _rate_text(value)

    @field_validator("rates", mode="before")
    @classmethod
    def _rates_as_text(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(key): _rate_text(rate) for key, rate in value.items() if rate is not None}
        return value


class Review(BaseModel):
    id: str
    provider_id: str
    reviewer_id: str = ""
    reviewer_name: str = "Anonymous"
    reviewer_photo: Optional[str] = None
    rating: int = Field(ge=1, le=5)
    comment: str = ""
    service_type: str = ""
    created_at: Optional[str] = None


class RatingSummary(BaseModel):
    average_rating: Optional[float] = None
    total_reviews: int = 0
    display_rating: Optional[float] = None
    label: str = "No reviews yet"


class ProviderCandidate(BaseModel):
    profile: ProviderProfile
    reviews: List[Review] = Field(default_factory=list)


class SearchFilters(BaseModel):
    query: Optional[str] = None
    service_type: Optional[ServiceType] = None
    breeds: List[str] = Field(default_factory=list)
    distance_miles: Optional[float] = Field(default=None, gt=0)
    result_type: ResultType = "all"


class SearchRequest(SearchFilters):
    location: Optional[GeoPoint] = None
    address: Optional[str] = None
    device_location: Optional[GeoPoint] = None
    sort_order: SortOrder = "none"


class Origin(GeoPoint):
    label: str
    source: Literal["request", "geocoded", "device"]


class SearchResult(BaseModel):
    id: str
    is_provider: bool
    display_name: str
    service_label: str
    service_types: List[str] = Field(default_factory=list)
    description: str = ""
    location: Location
    price_label: str
    price_value: float = 0.0
    rate: str = ""
    rate_type: str = ""
    photo_url: Optional[str] = None
    rating: Optional[float] = None
    total_reviews: Optional[int] = None
    rating_label: Optional[str] = None
    distance_miles: Optional[float] = None
    breeds: List[str] = Field(default_factory=list)
    details_path: str


class SearchResponse(BaseModel):
    results: List[SearchResult] = Field(default_factory=list)
    total: int = 0
    origin: Optional[Origin] = None
    messages: List[str] = Field(default_factory=list)
    error: Optional[str] = None
    generation: int = 0
    stale: bool = False


class MapMarker(BaseModel):
    id: str
    position: GeoPoint
    title: str
    service_label: str
    description: str = ""
    price_label: str
    is_provider: bool
    details_path: str


class MapView(BaseModel):
    center: GeoPoint
    zoom: int
    markers: List[MapMarker] = Field(default_factory=list)
    messages: List[str] = Field(default_factory=list)
    error: Optional[str] = None


class GeocodeCandidate(BaseModel):
    label: str
    lat: float
    lng: float


class JobCreateRequest(BaseModel):
    owner_uid: str
    owner_name: str = "Anonymous"
    service_type: ServiceType
    description: str = ""
    location: Location
    rate: str
    rate_type: RateType = "per_hour"
    start_date: str
    end_date: str
    breeds: List[str] = Field(default_factory=list)


class ReviewCreateRequest(BaseModel):
    reviewer_id: str
    reviewer_name: str = "Anonymous"
    reviewer_photo: Optional[str] = None
    rating: int
    comment: str
    service_type: str = ""


class ProviderDetails(BaseModel):
    provider: ProviderProfile
    reviews: List[Review]
    rating: RatingSummary


class BreedCatalog(BaseModel):
    categories: Dict[str, List[str]]
    all_breeds: List[str]


class CandidateSet(BaseModel):
    jobs: List[JobPost] = Field(default_factory=list)
    providers: List[ProviderCandidate] = Field(default_factory=list)

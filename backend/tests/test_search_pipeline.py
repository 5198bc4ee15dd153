import asyncio
import json
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from app.models import GeoPoint, GeocodeCandidate, SearchRequest, SearchResponse
from app.services.candidate_fetcher import CandidateFetcher
from app.services.document_store import DocumentStore, DocumentStoreUnavailableError
from app.services.location_resolver import LOCATION_NOT_FOUND_MESSAGE, POSITION_UNAVAILABLE_MESSAGE, LocationResolver
from app.services.search_pipeline import FETCH_FAILED_MESSAGE, SearchContext, SearchPipeline, SearchSession


class FakeGeocoder:
    def __init__(self, matches):
        self.matches = matches

    async def forward(self, query, limit=5):
        return self.matches.get(query, [])

    async def reverse(self, lat, lng):
        return None


@pytest.fixture()
def store(tmp_path):
    store = DocumentStore(db_path=str(tmp_path / "pipeline.sqlite3"), seed=False)
    store.put_user({"uid": "poster", "name": "Sam", "photo_url": "https://img/sam.jpg"})
    store.put_user(
        {
            "uid": "near_host",
            "name": "Maya",
            "role": {"host": True},
            "services": {"walk": True, "daycare": True},
            "rates": {"walk": "22", "daycare": "40"},
            "accepted_breeds": ["Pug"],
            "location": {"lat": 30.30, "lng": -97.70},
        }
    )
    store.put_user(
        {
            "uid": "far_host",
            "name": "Lena",
            "role": {"host": True},
            "services": {"walk": True},
            "rate": "15",
            "location": {"lat": 31.0, "lng": -97.74},
        }
    )
    for i, rating in enumerate([5, 4, 5]):
        store.put_review({"id": f"r{i}", "provider_id": "near_host", "rating": rating})
    store.put_job(
        {
            "id": "job_30",
            "owner_uid": "poster",
            "owner_name": "Sam",
            "service_type": "walk",
            "rate": "30",
            "breeds": ["Pug", "Beagle"],
            "location": {"lat": 30.27, "lng": -97.74},
        }
    )
    store.put_job(
        {
            "id": "job_15",
            "owner_uid": "poster",
            "owner_name": "Sam",
            "service_type": "walk",
            "rate": "15",
            "breeds": ["Husky"],
            "location": {"lat": 30.28, "lng": -97.75},
        }
    )
    return store


def _pipeline(store, matches=None):
    geocoder = FakeGeocoder(matches or {})
    return SearchPipeline(LocationResolver(geocoder), CandidateFetcher(store))


def test_austin_radius_search_end_to_end(store):
    request = SearchRequest(location=GeoPoint(lat=30.27, lng=-97.74), distance_miles=10, sort_order="lowToHigh")
    response = asyncio.run(_pipeline(store).run(request))

    assert response.error is None
    assert [r.id for r in response.results] == ["job_15", "near_host", "job_30"]
    near = next(r for r in response.results if r.id == "near_host")
    assert near.rating == pytest.approx(14 / 3)
    assert near.total_reviews == 3
    assert near.price_label == "$22/hour"
    job = next(r for r in response.results if r.id == "job_30")
    assert job.photo_url == "https://img/sam.jpg"
    assert job.details_path == "/jobs/job_30"


def test_geocoded_address_drives_radius(store):
    matches = {"Round Top": [GeocodeCandidate(label="Near Lena", lat=31.0, lng=-97.74)]}
    request = SearchRequest(address="Round Top", distance_miles=5, result_type="providers")
    response = asyncio.run(_pipeline(store, matches).run(request))
    assert response.origin.label == "Near Lena"
    assert [r.id for r in response.results] == ["far_host"]


def test_unknown_address_searches_everywhere(store):
    request = SearchRequest(address="Nowhere", distance_miles=5)
    response = asyncio.run(_pipeline(store).run(request))
    assert response.messages == [LOCATION_NOT_FOUND_MESSAGE]
    assert response.total == 4


def test_sensor_failure_still_returns_results(store):
    async def broken_sensor():
        raise OSError("location service crashed")

    context = SearchContext(position_sensor=broken_sensor, telemetry=False)
    response = asyncio.run(_pipeline(store).run(SearchRequest(), context))
    assert response.origin is None
    assert response.messages == [POSITION_UNAVAILABLE_MESSAGE]
    assert response.total == 4


def test_pug_filter_and_jobs_only(store):
    response = asyncio.run(_pipeline(store).run(SearchRequest(breeds=["Pug"], result_type="jobs")))
    assert [r.id for r in response.results] == ["job_30"]


def test_fetch_failure_returns_empty_with_message(store, caplog):
    def broken(service_type=None, breeds_any=None):
        raise DocumentStoreUnavailableError("unreachable")

    store.query_jobs = broken
    with caplog.at_level("ERROR", logger="app.services.search_pipeline"):
        response = asyncio.run(_pipeline(store).run(SearchRequest()))
    assert response.results == []
    assert response.total == 0
    assert response.error == FETCH_FAILED_MESSAGE
    assert "Search fetch failed" in caplog.text


def test_search_emits_telemetry_line(store, caplog):
    with caplog.at_level("INFO", logger="app.services.search_pipeline"):
        asyncio.run(_pipeline(store).run(SearchRequest(service_type="walk"), SearchContext(viewer_id="user_9")))
    lines = [r.getMessage() for r in caplog.records if r.getMessage().startswith("search_telemetry=")]
    assert len(lines) == 1
    payload = json.loads(lines[0].split("=", 1)[1])
    assert payload["viewer"] == "user_9"
    assert payload["service_type"] == "walk"
    assert payload["results"] == 4


def test_session_discards_stale_responses():
    class GatedPipeline:
        def __init__(self):
            self.gate = None

        async def run(self, request, context=None):
            if request.query == "slow":
                await self.gate.wait()
            return SearchResponse(messages=[request.query])

    async def scenario():
        pipeline = GatedPipeline()
        pipeline.gate = asyncio.Event()
        session = SearchSession(pipeline)
        slow_task = asyncio.create_task(session.submit(SearchRequest(query="slow")))
        await asyncio.sleep(0)
        fast = await session.submit(SearchRequest(query="fast"))
        pipeline.gate.set()
        slow = await slow_task
        return session, fast, slow

    session, fast, slow = asyncio.run(scenario())
    assert fast.stale is False
    assert fast.generation == 2
    assert slow.stale is True
    assert slow.generation == 1
    assert session.latest.messages == ["fast"]
    assert session.generation == 2

import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from app.models import JobCreateRequest, ReviewCreateRequest
from app.services.document_store import (
    DocumentStore,
    DocumentStoreNotFoundError,
    DocumentStorePermissionError,
    DocumentStoreValidationError,
)

NOW = datetime(2026, 10, 18, 9, 30, 45)


@pytest.fixture()
def store(tmp_path):
    store = DocumentStore(db_path=str(tmp_path / "store.sqlite3"), seed=False)
    store.put_user({"uid": "host_1", "name": "Maya", "role": {"host": True}})
    store.put_user({"uid": "owner_1", "name": "Sam", "role": {"owner": True}})
    return store


def _job_request(start, end, **overrides):
    payload = {
        "owner_uid": "owner_1",
        "owner_name": "Sam",
        "service_type": "walk",
        "description": "  Two pugs  ",
        "location": {"lat": 30.25, "lng": -97.75, "address": "Travis Heights"},
        "rate": "20",
        "start_date": start,
        "end_date": end,
        "breeds": ["Pug", " Pug ", ""],
    }
    payload.update(overrides)
    return JobCreateRequest(**payload)


def test_create_job_persists_open_post(store):
    job = store.create_job(_job_request("2026-10-20T09:00", "2026-10-20T10:00"), now=NOW)
    assert job.status == "open"
    assert job.description == "Two pugs"
    assert job.breeds == ["Pug"]
    stored = store.get_job(job.id)
    assert stored["owner_uid"] == "owner_1"
    assert [doc["id"] for doc in store.query_jobs(service_type="walk")] == [job.id]


def test_start_in_current_minute_is_allowed(store):
    store.create_job(_job_request("2026-10-18T09:30", "2026-10-18T11:00"), now=NOW)


def test_start_in_past_is_rejected(store):
    with pytest.raises(DocumentStoreValidationError, match="future"):
        store.create_job(_job_request("2026-10-18T09:29", "2026-10-18T11:00"), now=NOW)


def test_end_must_be_strictly_after_start(store):
    with pytest.raises(DocumentStoreValidationError, match="after start"):
        store.create_job(_job_request("2026-10-20T09:00", "2026-10-20T09:00"), now=NOW)


def test_unparseable_dates_are_rejected(store):
    with pytest.raises(DocumentStoreValidationError):
        store.create_job(_job_request("next tuesday", "2026-10-20T09:00"), now=NOW)


def test_timezone_aware_dates_compare_in_utc(store):
    start = (datetime.now(timezone.utc) + timedelta(days=2)).isoformat()
    end = (datetime.now(timezone.utc) + timedelta(days=3)).isoformat()
    job = store.create_job(_job_request(start, end))
    assert job.start_date == start


def test_review_rating_must_be_one_to_five(store):
    for rating in (0, 6):
        with pytest.raises(DocumentStoreValidationError):
            store.add_review("host_1", ReviewCreateRequest(reviewer_id="owner_1", rating=rating, comment="ok"))


def test_review_needs_comment_and_host(store):
    with pytest.raises(DocumentStoreValidationError):
        store.add_review("host_1", ReviewCreateRequest(reviewer_id="owner_1", rating=4, comment="   "))
    with pytest.raises(DocumentStoreNotFoundError):
        store.add_review("owner_1", ReviewCreateRequest(reviewer_id="host_1", rating=4, comment="Great"))
    with pytest.raises(DocumentStorePermissionError):
        store.add_review("host_1", ReviewCreateRequest(reviewer_id="host_1", rating=5, comment="Me!"))


def test_review_is_listed_for_provider(store):
    review = store.add_review("host_1", ReviewCreateRequest(reviewer_id="owner_1", rating=4, comment="Great"))
    docs = store.list_reviews("host_1")
    assert [doc["id"] for doc in docs] == [review.id]
    assert docs[0]["rating"] == 4


def test_disjunction_queries_are_capped(store):
    with pytest.raises(DocumentStoreValidationError):
        store.query_jobs(breeds_any=[f"b{i}" for i in range(11)])
    with pytest.raises(DocumentStoreValidationError):
        store.get_users([f"u{i}" for i in range(11)])
    assert store.get_users([]) == {}

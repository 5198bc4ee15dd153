import asyncio
import logging
import os
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from pydantic import ValidationError

from app.models import CandidateSet, JobPost, ProviderCandidate, ProviderProfile, Review
from app.services.document_store import MAX_DISJUNCTION_VALUES, DocumentStore, DocumentStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _read_concurrency_env(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


SEARCH_FETCH_CONCURRENCY = _read_concurrency_env("SEARCH_FETCH_CONCURRENCY", 8)


class CandidateFetchError(Exception):
    """Any read against the document store failed; the whole fetch is void."""


def chunked(values: Sequence[T], size: int = MAX_DISJUNCTION_VALUES) -> List[List[T]]:
    return [list(values[i : i + size]) for i in range(0, len(values), size)]


def has_coordinates(doc: Dict[str, Any]) -> bool:
    location = doc.get("location")
    if not isinstance(location, dict):
        return False
    lat, lng = location.get("lat"), location.get("lng")
    for value in (lat, lng):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
    # 0,0 is what the posting form stores before an address is geocoded.
    return not (lat == 0 and lng == 0)


def _merge_by_key(batches: Iterable[List[Dict[str, Any]]], key: str) -> List[Dict[str, Any]]:
    seen: Dict[str, Dict[str, Any]] = {}
    for batch in batches:
        for doc in batch:
            doc_id = str(doc.get(key) or "")
            if doc_id and doc_id not in seen:
                seen[doc_id] = doc
    return list(seen.values())


def _parse_job(doc: Dict[str, Any]) -> Optional[JobPost]:
    try:
        return JobPost.model_validate(doc)
    except ValidationError:
        logger.debug("Skipping malformed job document %s", doc.get("id"))
        return None


def _parse_profile(doc: Dict[str, Any]) -> Optional[ProviderProfile]:
    try:
        return ProviderProfile.model_validate(doc)
    except ValidationError:
        logger.debug("Skipping malformed provider document %s", doc.get("uid"))
        return None


def _parse_reviews(docs: List[Dict[str, Any]]) -> List[Review]:
    reviews: List[Review] = []
    for doc in docs:
        try:
            reviews.append(Review.model_validate(doc))
        except ValidationError:
            logger.debug("Skipping malformed review document %s", doc.get("id"))
    return reviews


class CandidateFetcher:
    """Reads jobs and host profiles and joins in the data each result card needs.

    Jobs get the poster's photo, providers get their review list. All
    enrichment lookups run concurrently under one semaphore and are joined
    once before anything is returned.
    """

    def __init__(self, store: DocumentStore, concurrency: int = SEARCH_FETCH_CONCURRENCY) -> None:
        self.store = store
        self.concurrency = max(1, concurrency)

    async def _call(self, gate: asyncio.Semaphore, fn: Callable[..., T], *args: Any) -> T:
        async with gate:
            return await asyncio.to_thread(fn, *args)

    async def _gather(self, calls: List[Awaitable[T]]) -> List[T]:
        return list(await asyncio.gather(*calls))

    async def fetch(
        self,
        service_type: Optional[str] = None,
        breeds: Sequence[str] = (),
        result_type: str = "all",
    ) -> CandidateSet:
        try:
            return await self._fetch(service_type, list(dict.fromkeys(breeds)), result_type)
        except DocumentStoreError as exc:
            raise CandidateFetchError(str(exc)) from exc

    async def _fetch(self, service_type: Optional[str], breeds: List[str], result_type: str) -> CandidateSet:
        gate = asyncio.Semaphore(self.concurrency)
        breed_chunks: List[Optional[List[str]]] = list(chunked(breeds)) if breeds else [None]

        job_calls = []
        if result_type in ("all", "jobs"):
            job_calls = [self._call(gate, self.store.query_jobs, service_type, chunk) for chunk in breed_chunks]
        host_calls = []
        if result_type in ("all", "providers"):
            host_calls = [self._call(gate, self.store.query_hosts, chunk) for chunk in breed_chunks]

        job_batches, host_batches = await asyncio.gather(self._gather(job_calls), self._gather(host_calls))

        job_docs = [doc for doc in _merge_by_key(job_batches, "id") if has_coordinates(doc)]
        host_docs = [doc for doc in _merge_by_key(host_batches, "uid") if has_coordinates(doc)]

        jobs = [job for job in (_parse_job(doc) for doc in job_docs) if job is not None and job.location]
        profiles = [p for p in (_parse_profile(doc) for doc in host_docs) if p is not None and p.location]

        owner_uids = list(dict.fromkeys(job.owner_uid for job in jobs if job.owner_uid))
        owner_calls = [self._call(gate, self.store.get_users, batch) for batch in chunked(owner_uids)]
        review_calls = [self._call(gate, self.store.list_reviews, profile.uid) for profile in profiles]

        owner_batches, review_batches = await asyncio.gather(
            self._gather(owner_calls),
            self._gather(review_calls),
        )

        owners: Dict[str, Dict[str, Any]] = {}
        for batch in owner_batches:
            owners.update(batch)
        for job in jobs:
            photo = (owners.get(job.owner_uid) or {}).get("photo_url")
            job.owner_photo_url = photo if isinstance(photo, str) and photo else None

        providers = [
            ProviderCandidate(profile=profile, reviews=_parse_reviews(review_docs))
            for profile, review_docs in zip(profiles, review_batches)
        ]
        logger.debug(
            "Fetched %d jobs and %d providers (%d owner batches, %d review lookups)",
            len(jobs),
            len(providers),
            len(owner_calls),
            len(review_calls),
        )
        return CandidateSet(jobs=jobs, providers=providers)

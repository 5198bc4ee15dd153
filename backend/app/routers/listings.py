from typing import Optional

from fastapi import APIRouter, Header, HTTPException
from pydantic import ValidationError

from app.auth import assert_actor_authorized
from app.models import (
    JobCreateRequest,
    JobPost,
    ProviderDetails,
    ProviderProfile,
    Review,
    ReviewCreateRequest,
)
from app.services.document_store import (
    DocumentStoreError,
    DocumentStoreNotFoundError,
    DocumentStorePermissionError,
    DocumentStoreUnavailableError,
    document_store,
)
from app.services.search_engine import summarize_ratings

router = APIRouter(tags=["listings"])


def _raise_store_http_error(exc: DocumentStoreError) -> None:
    if isinstance(exc, DocumentStoreNotFoundError):
        raise HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, DocumentStorePermissionError):
        raise HTTPException(status_code=403, detail=str(exc))
    if isinstance(exc, DocumentStoreUnavailableError):
        raise HTTPException(status_code=503, detail="Failed to load data. Please try again.")
    raise HTTPException(status_code=400, detail=str(exc))


@router.get("/providers/{uid}", response_model=ProviderDetails)
def provider_details(uid: str):
    try:
        doc = document_store.get_user(uid)
        review_docs = document_store.list_reviews(uid) if doc else []
    except DocumentStoreError as exc:
        _raise_store_http_error(exc)
    if not doc or (doc.get("role") or {}).get("host") is not True:
        raise HTTPException(status_code=404, detail="Provider not found")
    try:
        provider = ProviderProfile.model_validate(doc)
    except ValidationError:
        raise HTTPException(status_code=404, detail="Provider not found")

    reviews = []
    for review_doc in review_docs:
        try:
            reviews.append(Review.model_validate(review_doc))
        except ValidationError:
            continue
    reviews.sort(key=lambda r: r.created_at or "", reverse=True)
    return ProviderDetails(provider=provider, reviews=reviews, rating=summarize_ratings(reviews))


@router.get("/jobs/{job_id}", response_model=JobPost)
def job_details(job_id: str):
    try:
        doc = document_store.get_job(job_id)
    except DocumentStoreError as exc:
        _raise_store_http_error(exc)
    if not doc:
        raise HTTPException(status_code=404, detail="Job not found")
    try:
        return JobPost.model_validate(doc)
    except ValidationError:
        raise HTTPException(status_code=404, detail="Job not found")


@router.post("/jobs", response_model=JobPost)
def create_job(
    request: JobCreateRequest,
    authorization: Optional[str] = Header(default=None),
):
    assert_actor_authorized(actor_user_id=request.owner_uid, authorization=authorization)
    try:
        return document_store.create_job(request)
    except DocumentStoreError as exc:
        _raise_store_http_error(exc)


@router.post("/providers/{uid}/reviews", response_model=Review)
def leave_review(
    uid: str,
    request: ReviewCreateRequest,
    authorization: Optional[str] = Header(default=None),
):
    assert_actor_authorized(actor_user_id=request.reviewer_id, authorization=authorization)
    try:
        return document_store.add_review(uid, request)
    except DocumentStoreError as exc:
        _raise_store_http_error(exc)

import json
import os
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Iterable, List, Optional, Sequence
from uuid import uuid4

from app.data import SEED_JOBS, SEED_REVIEWS, SEED_USERS
from app.models import JobCreateRequest, JobPost, Review, ReviewCreateRequest


# The hosted store rejects array-contains-any / id-in queries with more values.
MAX_DISJUNCTION_VALUES = 10


class DocumentStoreError(ValueError):
    """Base class for user-visible document-store errors."""


class DocumentStoreValidationError(DocumentStoreError):
    pass


class DocumentStoreNotFoundError(DocumentStoreError):
    pass


class DocumentStorePermissionError(DocumentStoreError):
    pass


class DocumentStoreUnavailableError(DocumentStoreError):
    pass


def _check_disjunction(values: Sequence[str], field: str) -> None:
    if len(values) > MAX_DISJUNCTION_VALUES:
        raise DocumentStoreValidationError(
            f"{field} accepts at most {MAX_DISJUNCTION_VALUES} values per query"
        )


def _contains_any(doc: Dict[str, Any], field: str, values: Iterable[str]) -> bool:
    stored = doc.get(field)
    if not isinstance(stored, list):
        return False
    wanted = set(values)
    return any(item in wanted for item in stored)


@dataclass
class DocumentStore:
    """SQLite-backed stand-in for the hosted document database.

    Documents live as JSON blobs keyed by id; the columns next to the blob
    exist only for equality filters.
    """

    db_path: str
    seed: bool = True

    def __post_init__(self) -> None:
        self._lock = Lock()
        path = Path(self.db_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.db_path = str(path)
        self._init_db()
        if self.seed:
            self._seed_if_needed()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        with self._lock:
            with self._connect() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS jobs (
                        id TEXT PRIMARY KEY,
                        owner_uid TEXT NOT NULL DEFAULT '',
                        service_type TEXT NOT NULL DEFAULT '',
                        created_at TEXT NOT NULL DEFAULT '',
                        doc_json TEXT NOT NULL
                    )
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS users (
                        uid TEXT PRIMARY KEY,
                        is_host INTEGER NOT NULL DEFAULT 0,
                        created_at TEXT NOT NULL DEFAULT '',
                        doc_json TEXT NOT NULL
                    )
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS reviews (
                        id TEXT PRIMARY KEY,
                        provider_id TEXT NOT NULL,
                        created_at TEXT NOT NULL DEFAULT '',
                        doc_json TEXT NOT NULL
                    )
                    """
                )
                conn.execute("CREATE INDEX IF NOT EXISTS idx_reviews_provider ON reviews(provider_id)")
                conn.commit()

    def _seed_if_needed(self) -> None:
        with self._lock:
            with self._connect() as conn:
                count = conn.execute("SELECT COUNT(*) AS n FROM users").fetchone()["n"]
                if count:
                    return
                for user in SEED_USERS:
                    self._write_user(conn, user)
                for job in SEED_JOBS:
                    self._write_job(conn, job)
                for review in SEED_REVIEWS:
                    self._write_review(conn, review)
                conn.commit()

    @staticmethod
    def _load(row: sqlite3.Row) -> Dict[str, Any]:
        try:
            value = json.loads(row["doc_json"] or "{}")
        except json.JSONDecodeError:
            return {}
        return value if isinstance(value, dict) else {}

    @staticmethod
    def _write_job(conn: sqlite3.Connection, doc: Dict[str, Any]) -> None:
        conn.execute(
            """
            INSERT OR REPLACE INTO jobs (id, owner_uid, service_type, created_at, doc_json)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                str(doc["id"]),
                str(doc.get("owner_uid") or ""),
                str(doc.get("service_type") or ""),
                str(doc.get("created_at") or ""),
                json.dumps(doc),
            ),
        )

    @staticmethod
    def _write_user(conn: sqlite3.Connection, doc: Dict[str, Any]) -> None:
        role = doc.get("role") if isinstance(doc.get("role"), dict) else {}
        conn.execute(
            """
            INSERT OR REPLACE INTO users (uid, is_host, created_at, doc_json)
            VALUES (?, ?, ?, ?)
            """,
            (
                str(doc["uid"]),
                1 if role.get("host") is True else 0,
                str(doc.get("created_at") or ""),
                json.dumps(doc),
            ),
        )

    @staticmethod
    def _write_review(conn: sqlite3.Connection, doc: Dict[str, Any]) -> None:
        conn.execute(
            """
            INSERT INTO reviews (id, provider_id, created_at, doc_json)
            VALUES (?, ?, ?, ?)
            """,
            (
                str(doc["id"]),
                str(doc["provider_id"]),
                str(doc.get("created_at") or ""),
                json.dumps(doc),
            ),
        )

    def _read(self, sql: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        try:
            with self._lock:
                with self._connect() as conn:
                    return conn.execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as exc:
            raise DocumentStoreUnavailableError(f"Document store read failed: {exc}") from exc

    # Raw writes used by seeding, fixtures and the profile layer.

    def put_user(self, doc: Dict[str, Any]) -> None:
        with self._lock:
            with self._connect() as conn:
                self._write_user(conn, doc)
                conn.commit()

    def put_job(self, doc: Dict[str, Any]) -> None:
        with self._lock:
            with self._connect() as conn:
                self._write_job(conn, doc)
                conn.commit()

    def put_review(self, doc: Dict[str, Any]) -> None:
        with self._lock:
            with self._connect() as conn:
                self._write_review(conn, doc)
                conn.commit()

    # Queries

    def query_jobs(
        self,
        service_type: Optional[str] = None,
        breeds_any: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]:
        if breeds_any:
            _check_disjunction(breeds_any, "breeds")
        if service_type:
            rows = self._read("SELECT doc_json FROM jobs WHERE service_type = ? ORDER BY rowid", (service_type,))
        else:
            rows = self._read("SELECT doc_json FROM jobs ORDER BY rowid")
        docs = [self._load(row) for row in rows]
        if breeds_any:
            docs = [doc for doc in docs if _contains_any(doc, "breeds", breeds_any)]
        return docs

    def query_hosts(self, breeds_any: Optional[Sequence[str]] = None) -> List[Dict[str, Any]]:
        if breeds_any:
            _check_disjunction(breeds_any, "accepted_breeds")
        rows = self._read("SELECT doc_json FROM users WHERE is_host = 1 ORDER BY rowid")
        docs = [self._load(row) for row in rows]
        if breeds_any:
            docs = [doc for doc in docs if _contains_any(doc, "accepted_breeds", breeds_any)]
        return docs

    def get_users(self, uids: Sequence[str]) -> Dict[str, Dict[str, Any]]:
        _check_disjunction(uids, "uid")
        if not uids:
            return {}
        placeholders = ",".join("?" for _ in uids)
        rows = self._read(f"SELECT uid, doc_json FROM users WHERE uid IN ({placeholders})", list(uids))
        return {row["uid"]: self._load(row) for row in rows}

    def get_user(self, uid: str) -> Optional[Dict[str, Any]]:
        return self.get_users([uid]).get(uid)

    def get_job(self, job_id: str) -> Optional[Dict[str, Any]]:
        rows = self._read("SELECT doc_json FROM jobs WHERE id = ?", (job_id,))
        return self._load(rows[0]) if rows else None

    def list_reviews(self, provider_id: str) -> List[Dict[str, Any]]:
        rows = self._read("SELECT doc_json FROM reviews WHERE provider_id = ? ORDER BY rowid", (provider_id,))
        return [self._load(row) for row in rows]

    # Write paths

    def _parse_iso_datetime(self, value: str, *, field: str) -> datetime:
        try:
            return datetime.fromisoformat(value.strip())
        except (AttributeError, ValueError) as exc:
            raise DocumentStoreValidationError(f"Invalid {field}. Use ISO format.") from exc

    def create_job(self, request: JobCreateRequest, now: Optional[datetime] = None) -> JobPost:
        owner_uid = request.owner_uid.strip()
        if not owner_uid:
            raise DocumentStoreValidationError("owner_uid is required")
        if not request.rate.strip():
            raise DocumentStoreValidationError("rate is required")

        start = self._parse_iso_datetime(request.start_date, field="start_date")
        end = self._parse_iso_datetime(request.end_date, field="end_date")
        if (start.tzinfo is None) != (end.tzinfo is None):
            raise DocumentStoreValidationError("start_date and end_date must both carry a timezone or neither")

        if now is None:
            now = datetime.now(timezone.utc) if start.tzinfo else datetime.now()
        now = now.replace(second=0, microsecond=0)
        if start < now:
            raise DocumentStoreValidationError("Start date must be in the future")
        if end <= start:
            raise DocumentStoreValidationError("End date must be after start date")

        created_at = datetime.now(timezone.utc).isoformat()
        job = JobPost(
            id=f"job_{uuid4().hex[:12]}",
            owner_uid=owner_uid,
            owner_name=request.owner_name.strip() or "Anonymous",
            service_type=request.service_type,
            description=request.description.strip(),
            location=request.location,
            rate=request.rate.strip(),
            rate_type=request.rate_type,
            start_date=request.start_date,
            end_date=request.end_date,
            breeds=list(dict.fromkeys(b.strip() for b in request.breeds if b.strip())),
            created_at=created_at,
            status="open",
        )
        self.put_job(job.model_dump(exclude={"owner_photo_url"}))
        return job

    def add_review(self, provider_id: str, request: ReviewCreateRequest) -> Review:
        if request.rating not in {1, 2, 3, 4, 5}:
            raise DocumentStoreValidationError("Please select a rating between 1 and 5")
        comment = request.comment.strip()
        if not comment:
            raise DocumentStoreValidationError("Please write a review")
        reviewer_id = request.reviewer_id.strip()
        if not reviewer_id:
            raise DocumentStoreValidationError("reviewer_id is required")
        if reviewer_id == provider_id:
            raise DocumentStorePermissionError("Providers cannot review themselves")

        provider = self.get_user(provider_id)
        role = (provider or {}).get("role") or {}
        if not provider or role.get("host") is not True:
            raise DocumentStoreNotFoundError("Provider not found")

        review = Review(
            id=f"rev_{uuid4().hex[:12]}",
            provider_id=provider_id,
            reviewer_id=reviewer_id,
            reviewer_name=request.reviewer_name.strip() or "Anonymous",
            reviewer_photo=request.reviewer_photo,
            rating=request.rating,
            comment=comment,
            service_type=request.service_type,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        self.put_review(review.model_dump())
        return review


default_db = str(Path(__file__).resolve().parents[2] / "data" / "pawpals.sqlite3")
document_store = DocumentStore(db_path=os.getenv("PAWPALS_DB_PATH", default_db))

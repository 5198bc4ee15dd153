import importlib
import os
import sqlite3
import sys


sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from app.services.document_store import DocumentStore


def test_auth_ttl_invalid_env_falls_back(monkeypatch):
    monkeypatch.setenv("AUTH_TOKEN_TTL_HOURS", "not-a-number")
    sys.modules.pop("app.auth", None)
    auth = importlib.import_module("app.auth")
    assert auth.TOKEN_TTL_HOURS == 24


def test_auth_ttl_non_positive_env_falls_back(monkeypatch):
    monkeypatch.setenv("AUTH_TOKEN_TTL_HOURS", "0")
    sys.modules.pop("app.auth", None)
    auth = importlib.import_module("app.auth")
    assert auth.TOKEN_TTL_HOURS == 24


def test_tampered_token_is_rejected():
    auth = importlib.import_module("app.auth")
    token, _ = auth.issue_viewer_token("user_sam")
    assert auth.verify_viewer_token(token) == "user_sam"
    payload, signature = token.split(".", 1)
    assert auth.verify_viewer_token(f"{payload}.{signature[::-1]}") is None
    assert auth.verify_viewer_token("garbage") is None
    assert auth.resolve_request_user(f"Basic {token}") is None


def test_document_store_handles_invalid_json_documents(tmp_path):
    db_path = tmp_path / "docs.sqlite3"
    store = DocumentStore(db_path=str(db_path), seed=False)
    with sqlite3.connect(str(db_path)) as conn:
        conn.execute(
            "INSERT INTO users (uid, is_host, created_at, doc_json) VALUES (?, ?, ?, ?)",
            ("u1", 1, "", "{bad"),
        )
        conn.execute(
            "INSERT INTO users (uid, is_host, created_at, doc_json) VALUES (?, ?, ?, ?)",
            ("u2", 1, "", "42"),
        )
        conn.commit()

    assert store.query_hosts() == [{}, {}]
    assert store.get_user("u1") == {}


def test_seed_runs_only_on_empty_store(tmp_path):
    db_path = str(tmp_path / "seeded.sqlite3")
    first = DocumentStore(db_path=db_path)
    hosts = len(first.query_hosts())
    assert hosts >= 1
    first.put_user({"uid": "extra_host", "role": {"host": True}})
    second = DocumentStore(db_path=db_path)
    assert len(second.query_hosts()) == hosts + 1

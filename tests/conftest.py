"""Shared fixtures for the Marisk site test suite."""

from __future__ import annotations

import base64
import json
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from marisk_site.config import Settings
from marisk_site.main import create_app

# Smallest valid-looking payloads; the server never inspects image contents.
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 16


def data_uri(mime: str, payload: bytes) -> str:
    return f"data:{mime};base64,{base64.b64encode(payload).decode('ascii')}"


class FakeClock:
    """Manually advanced clock for session expiry tests."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def sample_faqs() -> list[dict]:
    return [
        {"question": "Q1", "answer": "A1"},
        {"question": "hello world", "answer": "A2"},
        {"question": "what are your hours", "answer": "We are open 9-5"},
    ]


@pytest.fixture()
def settings(tmp_path: Path, sample_faqs: list[dict]) -> Settings:
    """Settings pointing at a throwaway data dir and static root."""
    data_dir = tmp_path / "data"
    static_dir = tmp_path / "public"
    (data_dir / "locales").mkdir(parents=True)
    static_dir.mkdir()

    (data_dir / "faqs.json").write_text(json.dumps(sample_faqs), encoding="utf-8")
    (data_dir / "gallery.json").write_text("[]", encoding="utf-8")
    (data_dir / "locales" / "en.json").write_text(
        json.dumps({"greeting": "Hello", "chat_no_answer": "No idea, sorry."}),
        encoding="utf-8",
    )
    (data_dir / "locales" / "fr.json").write_text(
        json.dumps({"greeting": "Bonjour", "chat_no_answer": "Aucune idée."}),
        encoding="utf-8",
    )
    (static_dir / "index.html").write_text("<h1>home</h1>", encoding="utf-8")
    (static_dir / "admin.html").write_text("<h1>admin</h1>", encoding="utf-8")

    return Settings(data_dir=data_dir, static_dir=static_dir)


@pytest.fixture()
def app(settings: Settings) -> FastAPI:
    return create_app(settings)


@pytest.fixture()
def client(app: FastAPI) -> TestClient:
    """FastAPI test client bound to a fresh app."""
    return TestClient(app)


def _login(client: TestClient) -> dict[str, str]:
    resp = client.post("/api/admin/login", json={"username": "admin", "password": "admin"})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['token']}"}


@pytest.fixture()
def admin_headers_factory():
    """Log in against any client and return its Authorization header."""
    return _login


@pytest.fixture()
def admin_headers(client: TestClient) -> dict[str, str]:
    """Authorization header for a freshly logged-in admin."""
    return _login(client)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def png_uri() -> str:
    return data_uri("image/png", PNG_BYTES)


@pytest.fixture()
def jpeg_uri() -> str:
    return data_uri("image/jpeg", JPEG_BYTES)

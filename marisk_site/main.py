"""
marisk_site/main.py
-----------------------------------------------------------------------------
FastAPI application for the Marisk marketing site.

This module is a **thin routing layer** — each route handler validates its
input, calls into a domain module, and returns the result.  All state lives
in a :class:`SiteState` built by :func:`create_app` and shared with handlers
through a dependency, so every test can start from a fresh app.

Domain modules
~~~~~~~~~~~~~~
- ``marisk_site.config``   – environment-driven settings.
- ``marisk_site.schema``   – Pydantic v2 document and request/response models.
- ``marisk_site.store``    – FAQ / gallery / locale persistence.
- ``marisk_site.sessions`` – Admin bearer-token registry (sliding expiry).
- ``marisk_site.images``   – Data-URI image decoding and storage.
- ``marisk_site.matcher``  – Chat answer lookup and FAQ suggestions.

Run with:
    uvicorn marisk_site.main:app --host 0.0.0.0 --port 3000
or the ``marisk-site`` console script.

Endpoints
---------
OPTIONS *                      → CORS preflight, 204
GET  /api/locales/{lang}       → translation mapping (falls back to English)
GET  /api/faqs                 → all FAQs in insertion order
GET  /api/gallery              → all gallery entries in insertion order
GET  /api/faqs-suggestions     → up to 5 random FAQ questions
POST /api/chat                 → answer a free-text question
POST /api/admin/login          → exchange credentials for a bearer token
POST /api/admin/add-faq        → (auth) append an FAQ
POST /api/admin/upload-image   → (auth) store a before/after image pair
GET  /admin                    → admin console page
GET  /*                        → static files from the static root

Error responses
---------------
400/401/403/413 and handler-raised 500s are JSON ``{"error": "..."}`` with
the CORS headers.  Unknown paths are plain-text 404.  Any unexpected
exception is logged and answered with a plain-text 500.
"""

from __future__ import annotations

import json
import logging
import secrets
from typing import Any

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, HTTPException
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse, Response
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request

from marisk_site.config import Settings, read_version
from marisk_site.images import decode_and_store
from marisk_site.matcher import resolve_answer, sample_questions
from marisk_site.schema import (
    AddFaqRequest,
    ChatRequest,
    ChatResponse,
    FaqEntry,
    GalleryEntry,
    LoginRequest,
    LoginResponse,
    SuccessResponse,
    UploadImageRequest,
    UploadImageResponse,
)
from marisk_site.sessions import SessionRegistry
from marisk_site.store import DataStore

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Responses
# -----------------------------------------------------------------------------

CORS_HEADERS: dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


class CORSJSONResponse(JSONResponse):
    """JSON response that always carries the permissive CORS headers."""

    def __init__(
        self,
        content: Any,
        status_code: int = 200,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> None:
        merged = {**CORS_HEADERS, **(headers or {})}
        super().__init__(content, status_code=status_code, headers=merged, **kwargs)


# -----------------------------------------------------------------------------
# Application state + dependencies
# -----------------------------------------------------------------------------


class SiteState:
    """Everything a request handler may touch, owned by one app instance."""

    def __init__(self, settings: Settings, store: DataStore, sessions: SessionRegistry) -> None:
        self.settings = settings
        self.store = store
        self.sessions = sessions


def get_site(request: Request) -> SiteState:
    return request.app.state.site


def require_admin(request: Request, site: SiteState = Depends(get_site)) -> None:
    """Reject the request with 403 unless it carries a live bearer token."""
    if not site.sessions.authenticate(request.headers.get("authorization")):
        raise HTTPException(status_code=403, detail="Unauthorized")


async def json_body(request: Request) -> dict[str, Any]:
    """
    Read the request body as a JSON object.

    The body is streamed so an oversized upload is rejected (413) as soon as
    it crosses the configured limit.  A non-JSON content type, invalid JSON,
    or a JSON value that isn't an object all yield ``{}``.
    """
    limit = request.app.state.site.settings.max_body_bytes
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise HTTPException(status_code=413, detail="Request body too large")

    if "application/json" not in request.headers.get("content-type", ""):
        return {}
    try:
        data = json.loads(body or b"{}")
    except ValueError as exc:
        logger.warning("JSON parse error on %s: %s", request.url.path, exc)
        return {}
    return data if isinstance(data, dict) else {}


# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------

router = APIRouter()


@router.options("/{full_path:path}", include_in_schema=False)
def preflight(full_path: str) -> Response:
    return Response(
        status_code=204,
        headers={**CORS_HEADERS, "Access-Control-Allow-Methods": "GET,POST,OPTIONS"},
    )


@router.get("/api/locales/{lang:path}", summary="Get a translation mapping")
def get_locale(lang: str, site: SiteState = Depends(get_site)) -> dict[str, Any]:
    """
    Return the key → text mapping for ``lang``.

    A trailing ``.json`` is ignored so ``/api/locales/fr.json`` works too.
    Unknown languages resolve to the fallback language, and to ``{}`` if
    that is missing as well.
    """
    return site.store.get_locale(lang.removesuffix(".json"))


@router.get("/api/faqs", summary="List all FAQs")
def list_faqs(site: SiteState = Depends(get_site)) -> list[FaqEntry]:
    return list(site.store.list_faqs())


@router.get("/api/gallery", summary="List all gallery entries")
def list_gallery(site: SiteState = Depends(get_site)) -> list[GalleryEntry]:
    return list(site.store.list_gallery())


@router.get("/api/faqs-suggestions", summary="Random FAQ questions for the chat widget")
def faq_suggestions(site: SiteState = Depends(get_site)) -> list[str]:
    """Up to five distinct FAQ questions, in random order."""
    return sample_questions(site.store.list_faqs())


@router.post("/api/chat", summary="Answer a visitor question from the FAQs")
def chat(
    body: dict[str, Any] = Depends(json_body),
    site: SiteState = Depends(get_site),
) -> ChatResponse:
    """
    Match the question against stored FAQs.

    Never fails on bad input: a missing or malformed body is an empty
    question, which gets the localised "no answer" text.
    """
    req = ChatRequest.model_validate(body)
    return ChatResponse(answer=resolve_answer(site.store, req.question, req.lang))


@router.post("/api/admin/login", summary="Exchange admin credentials for a token")
def login(
    body: dict[str, Any] = Depends(json_body),
    site: SiteState = Depends(get_site),
) -> LoginResponse:
    req = LoginRequest.model_validate(body)
    settings = site.settings
    if _credentials_match(req.username, settings.admin_username) and _credentials_match(
        req.password, settings.admin_password
    ):
        return LoginResponse(token=site.sessions.create())
    logger.info("Rejected admin login for %r", req.username)
    raise HTTPException(status_code=401, detail="Invalid credentials")


def _credentials_match(given: Any, expected: str) -> bool:
    if not isinstance(given, str):
        return False
    return secrets.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


@router.post(
    "/api/admin/add-faq",
    dependencies=[Depends(require_admin)],
    summary="Append an FAQ",
)
def add_faq(
    body: dict[str, Any] = Depends(json_body),
    site: SiteState = Depends(get_site),
) -> SuccessResponse:
    """
    Append a trimmed question/answer pair and rewrite the FAQ document.

    A failed write is logged but still reported as success: the FAQ is live
    in memory until the process restarts.
    """
    try:
        req = AddFaqRequest.model_validate(body)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail="Invalid payload") from exc

    site.store.append_faq(FaqEntry(question=req.question, answer=req.answer))
    return SuccessResponse()


@router.post(
    "/api/admin/upload-image",
    dependencies=[Depends(require_admin)],
    summary="Store a before/after image pair in the gallery",
)
def upload_image(
    body: dict[str, Any] = Depends(json_body),
    site: SiteState = Depends(get_site),
) -> UploadImageResponse:
    """
    Decode both images, write them under ``assets/img/`` and append a
    gallery entry.

    Raises
    ------
    HTTPException(400) if either image is missing or isn't a PNG/JPEG data URI.
    HTTPException(500) if an image or the gallery document can't be written.
    """
    req = UploadImageRequest.model_validate(body)
    if not req.before or not req.after:
        raise HTTPException(status_code=400, detail="Missing images")

    image_dir = site.settings.image_dir
    try:
        # Both images are attempted; an accepted "before" stays on disk even
        # when "after" is rejected.
        before_path = decode_and_store(req.before, "before", image_dir)
        after_path = decode_and_store(req.after, "after", image_dir)
    except OSError as exc:
        logger.exception("Failed to save images")
        raise HTTPException(status_code=500, detail="Failed to save images") from exc

    if before_path is None or after_path is None:
        raise HTTPException(status_code=400, detail="Invalid image data")

    entry = GalleryEntry(
        before=before_path,
        after=after_path,
        title=req.title,
        description=req.description,
    )
    if not site.store.append_gallery(entry):
        raise HTTPException(status_code=500, detail="Failed to save images")
    return UploadImageResponse(entry=entry)


@router.get("/admin", include_in_schema=False)
def admin_page(site: SiteState = Depends(get_site)) -> FileResponse:
    admin_path = site.settings.static_dir / "admin.html"
    if not admin_path.is_file():
        raise HTTPException(status_code=404)
    return FileResponse(admin_path, media_type="text/html")


# -----------------------------------------------------------------------------
# Error handlers
# -----------------------------------------------------------------------------


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
    # Method mismatches behave like any other unmatched request.
    if exc.status_code in (404, 405):
        return PlainTextResponse("Not Found", status_code=404)
    return CORSJSONResponse({"error": exc.detail}, status_code=exc.status_code)


async def unhandled_error_handler(request: Request, exc: Exception) -> Response:
    logger.error(
        "Server error on %s %s", request.method, request.url.path, exc_info=exc
    )
    return PlainTextResponse("Internal Server Error", status_code=500)


# -----------------------------------------------------------------------------
# Factory + entry point
# -----------------------------------------------------------------------------


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build a fully wired application.

    Creates the data and upload directories if needed, loads the FAQ and
    gallery documents, and mounts the static root last so every API route
    takes precedence over a same-named file.

    Parameters
    ----------
    settings : Configuration to use; read from the environment when omitted.
    """
    settings = settings or Settings.from_env()

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.image_dir.mkdir(parents=True, exist_ok=True)

    store = DataStore(
        faqs_path=settings.faqs_path,
        gallery_path=settings.gallery_path,
        locales_dir=settings.locales_dir,
        fallback_lang=settings.fallback_lang,
    )
    store.load_all()

    app = FastAPI(
        title="Marisk Site",
        description="Static site, FAQ chat, locales and gallery admin for the Marisk website.",
        version=read_version(),
        default_response_class=CORSJSONResponse,
    )
    app.state.site = SiteState(
        settings=settings,
        store=store,
        sessions=SessionRegistry(ttl=settings.session_ttl),
    )

    app.include_router(router)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Serve the site itself; directories resolve to their index.html.
    app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")
    return app


app = create_app()


def main() -> None:
    """Console entry point: configure logging and serve with uvicorn."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = Settings.from_env()
    logger.info("Server listening on port %d", settings.port)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()

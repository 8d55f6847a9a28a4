"""
marisk_site/schema.py
-----------------------------------------------------------------------------
Pydantic v2 models for the stored documents and the API bodies.

Design principles
-----------------
• Keep models thin – no business logic here.
• Stored documents (``FaqEntry``, ``GalleryEntry``) are validated on load so
  a malformed file degrades to an empty collection instead of failing later
  inside a handler.
• Request bodies are parsed leniently by the dispatcher (anything that is not
  a JSON object becomes ``{}``) and only then validated here, so each route
  keeps control over which status code a bad body produces.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, TypeAdapter, field_validator

# -----------------------------------------------------------------------------
# Stored documents
# -----------------------------------------------------------------------------


def _text_or_empty(v: Any) -> Any:
    # Hand-edited documents may hold null or bare numbers.
    if v is None:
        return ""
    if isinstance(v, (int, float)):
        return str(v)
    return v


class FaqEntry(BaseModel):
    """
    A single question/answer pair.  Duplicated questions are allowed.

    Keys other than ``question``/``answer`` found in ``faqs.json`` are kept,
    so rewriting the document never drops them.  ``null`` reads as ``""``.
    """

    model_config = {"extra": "allow"}

    question: str = Field("", description="Question text shown to visitors.")
    answer: str = Field("", description="Answer returned by the chat matcher.")

    @field_validator("question", "answer", mode="before")
    @classmethod
    def null_as_empty(cls, v: Any) -> Any:
        return _text_or_empty(v)


class GalleryEntry(BaseModel):
    """
    A before/after image pair.

    ``before`` and ``after`` are paths relative to the static root
    (e.g. ``assets/img/before-1718000000000-1a2b3c4d.png``).  Like
    :class:`FaqEntry`, unknown keys are preserved and ``null`` reads as ``""``.
    """

    model_config = {"extra": "allow"}

    before: str = ""
    after: str = ""
    title: str = ""
    description: str = ""

    @field_validator("before", "after", "title", "description", mode="before")
    @classmethod
    def null_as_empty(cls, v: Any) -> Any:
        return _text_or_empty(v)


FaqList = TypeAdapter(list[FaqEntry])
GalleryList = TypeAdapter(list[GalleryEntry])


# -----------------------------------------------------------------------------
# POST /api/chat
# -----------------------------------------------------------------------------


class ChatRequest(BaseModel):
    """
    Chat question.  Non-string values are treated as absent; both fields are
    trimmed, and ``lang`` falls back to ``"en"`` when blank.
    """

    question: str = ""
    lang: str = "en"

    @field_validator("question", mode="before")
    @classmethod
    def question_as_text(cls, v: Any) -> str:
        return v.strip() if isinstance(v, str) else ""

    @field_validator("lang", mode="before")
    @classmethod
    def lang_as_text(cls, v: Any) -> str:
        if isinstance(v, str) and v.strip():
            return v.strip()
        return "en"


class ChatResponse(BaseModel):
    answer: str


# -----------------------------------------------------------------------------
# Admin bodies
# -----------------------------------------------------------------------------


class LoginRequest(BaseModel):
    username: Any = None
    password: Any = None


class LoginResponse(BaseModel):
    token: str = Field(..., description="Opaque bearer token (32 hex chars).")


class AddFaqRequest(BaseModel):
    """Both fields must be strings that are non-empty once trimmed."""

    question: str
    answer: str

    @field_validator("question", "answer", mode="before")
    @classmethod
    def non_blank_string(cls, v: Any) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("must be a non-empty string")
        return v.strip()


class UploadImageRequest(BaseModel):
    """
    Before/after pair as ``data:image/...;base64,`` URIs.

    Presence of both images is checked by the route (a missing image is a
    400 "Missing images", distinct from undecodable image data).
    """

    before: Any = None
    after: Any = None
    title: str = ""
    description: str = ""

    @field_validator("title", "description", mode="before")
    @classmethod
    def text_or_empty(cls, v: Any) -> str:
        return v if isinstance(v, str) else ""


class SuccessResponse(BaseModel):
    success: bool = True


class UploadImageResponse(BaseModel):
    success: bool = True
    entry: GalleryEntry

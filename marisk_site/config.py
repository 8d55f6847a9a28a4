"""
marisk_site/config.py
-----------------------------------------------------------------------------
Runtime configuration for the Marisk site backend.

Values come from the process environment, optionally seeded from a ``.env``
file in the working directory.  They are read once by :meth:`Settings.from_env`
and handed to :func:`marisk_site.main.create_app`, so tests can build an app
against temporary directories without touching the environment.

Environment variables
---------------------
PORT                  – TCP port to listen on (default 3000).
HOST                  – Interface to bind (default 0.0.0.0).
MARISK_DATA_DIR       – Directory holding faqs.json, gallery.json and
                        locales/<lang>.json (default: <repo>/data).
MARISK_STATIC_DIR     – Static root served as the site (default: <repo>/public).
MARISK_ADMIN_USERNAME – Admin login name (default "admin").
MARISK_ADMIN_PASSWORD – Admin password (default "admin").
MARISK_SESSION_TTL    – Seconds of inactivity before a session expires
                        (default 86400).
MARISK_MAX_BODY_BYTES – Largest accepted request body (default 20 MiB).
MARISK_FALLBACK_LANG  – Locale used when a requested language is missing
                        (default "en").
"""

from __future__ import annotations

import os
import tomllib
from importlib import metadata
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load .env if present (no-op if the file doesn't exist)
load_dotenv()

_HERE = Path(__file__).parent
_ROOT = _HERE.parent

DEFAULT_PORT: int = 3000
SESSION_TTL_SECONDS: int = 24 * 60 * 60
MAX_BODY_BYTES: int = 20 * 1024 * 1024


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def read_version() -> str:
    """
    Return the project version.

    ``pyproject.toml`` is the single source of truth in a checkout; an
    installed (non-editable) copy falls back to the distribution metadata.
    """
    try:
        with open(_ROOT / "pyproject.toml", "rb") as fh:
            return tomllib.load(fh)["project"]["version"]
    except FileNotFoundError:
        return metadata.version("marisk-site")


class Settings(BaseModel):
    """
    Immutable bundle of everything the application needs from its environment.

    Derived locations (documents, locales, upload directory) are properties
    so they always follow ``data_dir`` and ``static_dir``.
    """

    model_config = {"frozen": True}

    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    data_dir: Path = Field(default=_ROOT / "data")
    static_dir: Path = Field(default=_ROOT / "public")
    admin_username: str = "admin"
    admin_password: str = "admin"
    session_ttl: int = Field(default=SESSION_TTL_SECONDS, gt=0)
    max_body_bytes: int = Field(default=MAX_BODY_BYTES, gt=0)
    fallback_lang: str = "en"

    @property
    def faqs_path(self) -> Path:
        return self.data_dir / "faqs.json"

    @property
    def gallery_path(self) -> Path:
        return self.data_dir / "gallery.json"

    @property
    def locales_dir(self) -> Path:
        return self.data_dir / "locales"

    @property
    def image_dir(self) -> Path:
        """Upload target for gallery images, inside the static root."""
        return self.static_dir / "assets" / "img"

    @classmethod
    def from_env(cls) -> Settings:
        """
        Build settings from environment variables.

        Raises
        ------
        ValueError
            If a numeric variable is set to something that isn't an integer.
        """
        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=_env_int("PORT", DEFAULT_PORT),
            data_dir=Path(os.getenv("MARISK_DATA_DIR", str(_ROOT / "data"))).resolve(),
            static_dir=Path(
                os.getenv("MARISK_STATIC_DIR", str(_ROOT / "public"))
            ).resolve(),
            admin_username=os.getenv("MARISK_ADMIN_USERNAME", "admin"),
            admin_password=os.getenv("MARISK_ADMIN_PASSWORD", "admin"),
            session_ttl=_env_int("MARISK_SESSION_TTL", SESSION_TTL_SECONDS),
            max_body_bytes=_env_int("MARISK_MAX_BODY_BYTES", MAX_BODY_BYTES),
            fallback_lang=os.getenv("MARISK_FALLBACK_LANG", "en"),
        )

"""
marisk_site/store.py
-----------------------------------------------------------------------------
File-backed data store for FAQs, the before/after gallery and locale
documents.

Persistence contract
--------------------
- ``faqs.json`` and ``gallery.json`` are JSON arrays, loaded once by
  :meth:`DataStore.load_all`.  A missing or malformed file is logged and the
  collection starts empty; startup never fails on bad data.
- Every append pushes to the in-memory list first and then rewrites the whole
  document (pretty-printed, two-space indent).  A failed write is logged and
  reported to the caller as ``False``; the in-memory entry is kept, so the
  live list can run ahead of the file until the next successful write.
- Each document has its own lock held across append + write, so two
  concurrent appends are serialised and the last write always contains both.
- Locale documents (``locales/<lang>.json``) are read lazily and cached for
  the lifetime of the store.  A missing or unreadable language resolves to
  the fallback language; if the fallback itself is unavailable the result is
  an empty mapping.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from marisk_site.schema import FaqEntry, FaqList, GalleryEntry, GalleryList

logger = logging.getLogger(__name__)

# Language codes are used as file stems; anything else never touches disk.
_LANG_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def _load_collection(path: Path, adapter: TypeAdapter, label: str) -> list:
    try:
        raw = path.read_text(encoding="utf-8")
        return adapter.validate_json(raw)
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("Error loading %s from %s: %s", label, path, exc)
    except ValidationError as exc:
        logger.error("Error loading %s from %s: invalid document: %s", label, path, exc)
    return []


def _dump_collection(path: Path, entries: list) -> None:
    data = [entry.model_dump() for entry in entries]
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


class DataStore:
    """
    Sole owner of the FAQ and gallery collections and the locale cache.

    Parameters
    ----------
    faqs_path     : Location of the FAQ document.
    gallery_path  : Location of the gallery document.
    locales_dir   : Directory holding one ``<lang>.json`` per language.
    fallback_lang : Language used when a requested locale can't be loaded.
    """

    def __init__(
        self,
        faqs_path: Path,
        gallery_path: Path,
        locales_dir: Path,
        fallback_lang: str = "en",
    ) -> None:
        self.faqs_path = faqs_path
        self.gallery_path = gallery_path
        self.locales_dir = locales_dir
        self.fallback_lang = fallback_lang

        self._faqs: list[FaqEntry] = []
        self._gallery: list[GalleryEntry] = []
        self._locales: dict[str, dict[str, str]] = {}

        self._faqs_lock = threading.Lock()
        self._gallery_lock = threading.Lock()
        self._locales_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Startup
    # -------------------------------------------------------------------------

    def load_all(self) -> None:
        """Read both collections from disk, replacing the in-memory state."""
        faqs = _load_collection(self.faqs_path, FaqList, "FAQs")
        gallery = _load_collection(self.gallery_path, GalleryList, "gallery")
        with self._faqs_lock:
            self._faqs = faqs
        with self._gallery_lock:
            self._gallery = gallery
        logger.info("Loaded %d FAQs and %d gallery entries", len(faqs), len(gallery))

    # -------------------------------------------------------------------------
    # Listings
    # -------------------------------------------------------------------------

    def list_faqs(self) -> tuple[FaqEntry, ...]:
        """Snapshot of the FAQ list in insertion order."""
        with self._faqs_lock:
            return tuple(self._faqs)

    def list_gallery(self) -> tuple[GalleryEntry, ...]:
        """Snapshot of the gallery in insertion order."""
        with self._gallery_lock:
            return tuple(self._gallery)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def append_faq(self, entry: FaqEntry) -> bool:
        """
        Append an FAQ and rewrite ``faqs.json``.

        Returns
        -------
        bool : ``True`` if the document was written, ``False`` if the write
               failed (the entry stays in memory either way).
        """
        with self._faqs_lock:
            self._faqs.append(entry)
            try:
                _dump_collection(self.faqs_path, self._faqs)
            except OSError:
                logger.exception("Failed to write FAQs file %s", self.faqs_path)
                return False
        return True

    def append_gallery(self, entry: GalleryEntry) -> bool:
        """Append a gallery entry and rewrite ``gallery.json``.  See :meth:`append_faq`."""
        with self._gallery_lock:
            self._gallery.append(entry)
            try:
                _dump_collection(self.gallery_path, self._gallery)
            except OSError:
                logger.exception("Failed to write gallery file %s", self.gallery_path)
                return False
        return True

    # -------------------------------------------------------------------------
    # Locales
    # -------------------------------------------------------------------------

    def get_locale(self, lang: str) -> dict[str, str]:
        """
        Return the translation mapping for ``lang``.

        Successful reads are cached and never re-read, so edits to locale
        files after the first load are not observed.  Failures are not
        cached: a language that was missing is retried on the next call.

        Parameters
        ----------
        lang : Language code, e.g. ``"fr"``.

        Returns
        -------
        dict[str, str] : The locale mapping, the fallback language's mapping,
                         or ``{}`` when neither can be loaded.
        """
        with self._locales_lock:
            cached = self._locales.get(lang)
        if cached is not None:
            return cached

        locale = self._read_locale(lang)
        if locale is not None:
            with self._locales_lock:
                self._locales.setdefault(lang, locale)
                return self._locales[lang]

        if lang != self.fallback_lang:
            return self.get_locale(self.fallback_lang)
        return {}

    def _read_locale(self, lang: str) -> dict[str, str] | None:
        if not _LANG_PATTERN.match(lang):
            logger.warning("Rejected locale code %r", lang)
            return None
        path = self.locales_dir / f"{lang}.json"
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.warning("Locale %r not found at %s", lang, path)
            return None
        except (OSError, ValueError) as exc:
            logger.warning("Failed to read locale %r from %s: %s", lang, path, exc)
            return None
        if not isinstance(data, dict):
            logger.warning("Locale %r at %s is not a JSON object", lang, path)
            return None
        return data

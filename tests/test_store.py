"""
Tests for marisk_site/store.py — FAQ/gallery persistence and locale lookup.

Test strategy
-------------
1. Startup loading degrades to empty collections on missing/bad files.
2. Appends are visible immediately and rewrite the whole document.
3. A failed write is reported but does not roll back the in-memory append.
4. Locale lookup caches successes and falls back to the fallback language.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest

from marisk_site.schema import FaqEntry, GalleryEntry
from marisk_site.store import DataStore


def _store(data_dir: Path, fallback: str = "en") -> DataStore:
    return DataStore(
        faqs_path=data_dir / "faqs.json",
        gallery_path=data_dir / "gallery.json",
        locales_dir=data_dir / "locales",
        fallback_lang=fallback,
    )


@pytest.fixture()
def data_dir(tmp_path: Path) -> Path:
    (tmp_path / "locales").mkdir()
    return tmp_path


# ── load_all ────────────────────────────────────────────────────────────────


class TestLoadAll:
    def test_loads_both_documents(self, data_dir: Path) -> None:
        (data_dir / "faqs.json").write_text(
            json.dumps([{"question": "q", "answer": "a"}]), encoding="utf-8"
        )
        (data_dir / "gallery.json").write_text(
            json.dumps([{"before": "b.png", "after": "a.png"}]), encoding="utf-8"
        )
        store = _store(data_dir)
        store.load_all()

        assert store.list_faqs() == (FaqEntry(question="q", answer="a"),)
        gallery = store.list_gallery()
        assert len(gallery) == 1
        assert gallery[0].title == ""
        assert gallery[0].description == ""

    def test_missing_files_give_empty_collections(self, data_dir: Path) -> None:
        store = _store(data_dir)
        store.load_all()
        assert store.list_faqs() == ()
        assert store.list_gallery() == ()

    def test_malformed_json_gives_empty_collection(self, data_dir: Path) -> None:
        (data_dir / "faqs.json").write_text("not json {{{", encoding="utf-8")
        (data_dir / "gallery.json").write_text(
            json.dumps([{"before": "b.png", "after": "a.png"}]), encoding="utf-8"
        )
        store = _store(data_dir)
        store.load_all()
        assert store.list_faqs() == ()
        assert len(store.list_gallery()) == 1

    def test_wrong_shape_gives_empty_collection(self, data_dir: Path) -> None:
        """A JSON document that isn't a list of FAQ objects is rejected whole."""
        (data_dir / "faqs.json").write_text(json.dumps({"question": "q"}), encoding="utf-8")
        store = _store(data_dir)
        store.load_all()
        assert store.list_faqs() == ()

    def test_null_fields_read_as_empty(self, data_dir: Path) -> None:
        """An entry with a null title must not discard the whole gallery."""
        (data_dir / "gallery.json").write_text(
            json.dumps(
                [
                    {"before": "b1.png", "after": "a1.png", "title": "Kitchen"},
                    {"before": "b2.png", "after": "a2.png", "title": None, "description": None},
                ]
            ),
            encoding="utf-8",
        )
        store = _store(data_dir)
        store.load_all()
        gallery = store.list_gallery()
        assert len(gallery) == 2
        assert gallery[1].title == ""
        assert gallery[1].description == ""

    def test_numeric_question_read_as_text(self, data_dir: Path) -> None:
        (data_dir / "faqs.json").write_text(
            json.dumps([{"question": 42, "answer": "the answer"}]), encoding="utf-8"
        )
        store = _store(data_dir)
        store.load_all()
        assert store.list_faqs()[0].question == "42"

    def test_failure_is_logged(self, data_dir: Path, caplog: pytest.LogCaptureFixture) -> None:
        store = _store(data_dir)
        with caplog.at_level("ERROR", logger="marisk_site.store"):
            store.load_all()
        assert "Error loading FAQs" in caplog.text


# ── append_faq / append_gallery ─────────────────────────────────────────────


class TestAppendFaq:
    def test_append_visible_in_insertion_order(self, data_dir: Path) -> None:
        store = _store(data_dir)
        store.load_all()
        store.append_faq(FaqEntry(question="first", answer="1"))
        store.append_faq(FaqEntry(question="second", answer="2"))
        assert [f.question for f in store.list_faqs()] == ["first", "second"]

    def test_document_round_trips(self, data_dir: Path) -> None:
        store = _store(data_dir)
        store.load_all()
        assert store.append_faq(FaqEntry(question="q", answer="a")) is True
        assert store.append_faq(FaqEntry(question="q", answer="duplicate ok")) is True

        on_disk = json.loads((data_dir / "faqs.json").read_text(encoding="utf-8"))
        assert on_disk == [f.model_dump() for f in store.list_faqs()]
        assert len(on_disk) == 2

    def test_document_is_pretty_printed(self, data_dir: Path) -> None:
        store = _store(data_dir)
        store.load_all()
        store.append_faq(FaqEntry(question="q", answer="a"))
        text = (data_dir / "faqs.json").read_text(encoding="utf-8")
        assert '\n  {\n    "question": "q"' in text

    def test_write_failure_keeps_memory(self, tmp_path: Path) -> None:
        """The document's directory doesn't exist, so the write fails."""
        store = _store(tmp_path / "missing")
        store.load_all()
        assert store.append_faq(FaqEntry(question="q", answer="a")) is False
        assert store.list_faqs() == (FaqEntry(question="q", answer="a"),)

    def test_listing_is_a_snapshot(self, data_dir: Path) -> None:
        store = _store(data_dir)
        store.load_all()
        before = store.list_faqs()
        store.append_faq(FaqEntry(question="q", answer="a"))
        assert before == ()

    def test_concurrent_appends_all_reach_disk(self, data_dir: Path) -> None:
        store = _store(data_dir)
        store.load_all()

        def worker(n: int) -> None:
            for i in range(10):
                store.append_faq(FaqEntry(question=f"{n}-{i}", answer="a"))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        on_disk = json.loads((data_dir / "faqs.json").read_text(encoding="utf-8"))
        assert len(on_disk) == 40
        assert len(store.list_faqs()) == 40

    def test_extra_keys_survive_rewrite(self, data_dir: Path) -> None:
        (data_dir / "faqs.json").write_text(
            json.dumps([{"question": "q", "answer": "a", "category": "hours"}]),
            encoding="utf-8",
        )
        store = _store(data_dir)
        store.load_all()
        store.append_faq(FaqEntry(question="new", answer="b"))

        on_disk = json.loads((data_dir / "faqs.json").read_text(encoding="utf-8"))
        assert on_disk[0] == {"question": "q", "answer": "a", "category": "hours"}
        assert on_disk[1] == {"question": "new", "answer": "b"}


class TestAppendGallery:
    def test_append_and_persist(self, data_dir: Path) -> None:
        store = _store(data_dir)
        store.load_all()
        entry = GalleryEntry(before="assets/img/b.png", after="assets/img/a.png", title="t")
        assert store.append_gallery(entry) is True

        on_disk = json.loads((data_dir / "gallery.json").read_text(encoding="utf-8"))
        assert on_disk == [
            {
                "before": "assets/img/b.png",
                "after": "assets/img/a.png",
                "title": "t",
                "description": "",
            }
        ]

    def test_write_failure_reported(self, tmp_path: Path) -> None:
        store = _store(tmp_path / "missing")
        store.load_all()
        entry = GalleryEntry(before="b.png", after="a.png")
        assert store.append_gallery(entry) is False
        assert store.list_gallery() == (entry,)


# ── get_locale ──────────────────────────────────────────────────────────────


class TestGetLocale:
    def _write(self, data_dir: Path, lang: str, content: dict) -> None:
        (data_dir / "locales" / f"{lang}.json").write_text(
            json.dumps(content), encoding="utf-8"
        )

    def test_reads_requested_language(self, data_dir: Path) -> None:
        self._write(data_dir, "fr", {"hello": "bonjour"})
        assert _store(data_dir).get_locale("fr") == {"hello": "bonjour"}

    def test_missing_language_falls_back(self, data_dir: Path) -> None:
        self._write(data_dir, "en", {"hello": "hello"})
        assert _store(data_dir).get_locale("de") == {"hello": "hello"}

    def test_malformed_language_falls_back(self, data_dir: Path) -> None:
        self._write(data_dir, "en", {"hello": "hello"})
        (data_dir / "locales" / "fr.json").write_text("{broken", encoding="utf-8")
        assert _store(data_dir).get_locale("fr") == {"hello": "hello"}

    def test_missing_fallback_gives_empty(self, data_dir: Path) -> None:
        assert _store(data_dir).get_locale("de") == {}
        assert _store(data_dir).get_locale("en") == {}

    def test_path_like_codes_never_read_outside(self, data_dir: Path) -> None:
        self._write(data_dir, "en", {"hello": "hello"})
        (data_dir / "secret.json").write_text(json.dumps({"k": "v"}), encoding="utf-8")
        assert _store(data_dir).get_locale("../secret") == {"hello": "hello"}

    def test_success_is_cached(self, data_dir: Path) -> None:
        """Edits after the first successful read are not observed."""
        self._write(data_dir, "fr", {"hello": "bonjour"})
        store = _store(data_dir)
        assert store.get_locale("fr") == {"hello": "bonjour"}
        self._write(data_dir, "fr", {"hello": "salut"})
        assert store.get_locale("fr") == {"hello": "bonjour"}

    def test_failure_is_not_cached(self, data_dir: Path) -> None:
        store = _store(data_dir)
        assert store.get_locale("fr") == {}
        self._write(data_dir, "fr", {"hello": "bonjour"})
        assert store.get_locale("fr") == {"hello": "bonjour"}

    def test_custom_fallback_language(self, data_dir: Path) -> None:
        self._write(data_dir, "fr", {"hello": "bonjour"})
        assert _store(data_dir, fallback="fr").get_locale("xx") == {"hello": "bonjour"}

"""Tests for the SQLite storage layer."""

import sqlite3

import pytest

from site_search.models import SiteStatus

ROOT = "https://example.com"


@pytest.fixture
def site(db):
    return db.create_site(ROOT, "Example")


@pytest.mark.unit
class TestSites:
    def test_create_and_find_site(self, db, site):
        found = db.find_site_by_url(ROOT)

        assert found == db.get_site(site.id)
        assert found.name == "Example"
        assert found.status == SiteStatus.CRAWLING
        assert found.last_error is None

    def test_site_url_is_unique(self, db, site):
        with pytest.raises(sqlite3.IntegrityError):
            db.create_site(ROOT, "Duplicate")

    def test_update_status_keeps_previous_error(self, db, site):
        db.update_site_status(site.id, SiteStatus.FAILED, "boom")
        db.update_site_status(site.id, SiteStatus.FAILED)

        current = db.get_site(site.id)
        assert current.status == SiteStatus.FAILED
        assert current.last_error == "boom"

    def test_fail_crawling_sites_touches_only_crawling(self, db, site):
        indexed = db.create_site("https://other.com", "Other", SiteStatus.INDEXED)

        assert db.fail_crawling_sites("stopped") == 1
        assert db.get_site(site.id).status == SiteStatus.FAILED
        assert db.get_site(site.id).last_error == "stopped"
        assert db.get_site(indexed.id).status == SiteStatus.INDEXED

    def test_missing_site(self, db):
        assert db.find_site_by_url(ROOT) is None
        assert db.get_site(42) is None
        assert db.delete_site(ROOT) is False


@pytest.mark.unit
class TestPagesAndIndex:
    def test_page_path_is_unique_per_site(self, db, site):
        first = db.add_page(site.id, "/a", 200, "A", "text")

        assert first is not None
        assert db.add_page(site.id, "/a", 200, "A2", "other text") is None
        assert db.exists_page(site.id, "/a")
        assert [page.title for page in db.get_site_pages(site.id)] == ["A"]

    def test_same_path_on_two_sites(self, db, site):
        other = db.create_site("https://other.com", "Other")

        assert db.add_page(site.id, "/", 200) is not None
        assert db.add_page(other.id, "/", 200) is not None

    def test_upsert_lemma_counts_calls(self, db, site):
        lemma_id, created = db.upsert_lemma(site.id, "cat")
        same_id, created_again = db.upsert_lemma(site.id, "cat")

        assert created and not created_again
        assert lemma_id == same_id
        assert db.find_lemma(site.id, "cat").frequency == 2
        assert db.find_lemma(site.id, "dog") is None

    def test_duplicate_posting_is_rejected(self, db, site):
        page = db.add_page(site.id, "/", 200)
        lemma_id, _ = db.upsert_lemma(site.id, "cat")

        assert db.add_posting(page.id, lemma_id, 3.0)
        assert not db.add_posting(page.id, lemma_id, 5.0)
        assert db.get_page_postings(page.id) == {"cat": 3.0}

    def test_postings_for_lemma_filtered_by_site(self, db, site):
        other = db.create_site("https://other.com", "Other")
        for owner in (site, other):
            page = db.add_page(owner.id, "/", 200)
            lemma_id, _ = db.upsert_lemma(owner.id, "cat")
            db.add_posting(page.id, lemma_id, 1.0)

        assert len(db.get_postings_for_lemma("cat")) == 2
        only_other = db.get_postings_for_lemma("cat", "https://other.com")
        assert list(only_other.values()) == [1.0]
        assert db.get_postings_for_lemma("dog") == {}

    def test_pages_with_sites(self, db, site):
        page = db.add_page(site.id, "/a", 200, "A", "text")

        pages = db.get_pages_with_sites([page.id, 999])

        assert list(pages) == [page.id]
        loaded_page, loaded_site = pages[page.id]
        assert loaded_page == page
        assert loaded_site.url == ROOT
        assert db.get_pages_with_sites([]) == {}

    def test_delete_site_removes_everything(self, db, site):
        page = db.add_page(site.id, "/", 200)
        lemma_id, _ = db.upsert_lemma(site.id, "cat")
        db.add_posting(page.id, lemma_id, 1.0)

        assert db.delete_site(ROOT)

        assert db.find_site_by_url(ROOT) is None
        assert db.get_page(page.id) is None
        assert db.get_site_lemmas(site.id) == {}
        assert db.get_page_postings(page.id) == {}


@pytest.mark.unit
class TestStatistics:
    def test_statistics_reflect_stored_rows(self, db, site):
        db.add_page(site.id, "/", 200)
        db.add_page(site.id, "/a", 200)
        db.upsert_lemma(site.id, "cat")
        db.update_site_status(site.id, SiteStatus.INDEXED)

        stats = db.get_statistics(indexing=True)

        assert stats["total"] == {"sites": 1, "pages": 2, "lemmas": 1, "indexing": True}
        [detail] = stats["detailed"]
        assert detail["url"] == ROOT
        assert detail["status"] == "INDEXED"
        assert detail["pages"] == 2
        assert detail["lemmas"] == 1
        assert isinstance(detail["statusTime"], int)

    def test_empty_statistics(self, db):
        stats = db.get_statistics()
        assert stats["total"] == {"sites": 0, "pages": 0, "lemmas": 0, "indexing": False}
        assert stats["detailed"] == []

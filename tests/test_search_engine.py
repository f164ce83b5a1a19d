"""Tests for lemma-based search."""

from unittest.mock import Mock

import pytest

from site_search.indexer import IndexWriter
from site_search.lemmatizer import LemmaExtractor
from site_search.search_engine import (SearchEngine, EMPTY_QUERY, UNPROCESSABLE_QUERY,
                                       INVALID_PAGINATION, UNKNOWN_SITE)

ROOT = "https://example.com"
OTHER = "https://other.org"


@pytest.fixture
def index(db):
    """
    Два сайта:
      /a  - cat x1, mat x1
      /b  - cat x2
      /c  - cat x2, dog x1
      other.org/ - cat x5
    """
    writer = IndexWriter(db)
    site = db.create_site(ROOT, "Example")
    other = db.create_site(OTHER, "Other")

    pages = {}
    for owner, path, title, content, lemmas in [
        (site, "/a", "Page A", "The cat sat on the mat", {"cat": 1, "mat": 1}),
        (site, "/b", "Page B", "Cats, cats everywhere", {"cat": 2}),
        (site, "/c", "Page C", "A cat and a dog and another cat", {"cat": 2, "dog": 1}),
        (other, "/", "Other home", "Cats " * 5, {"cat": 5}),
    ]:
        page = db.add_page(owner.id, path, 200, title, content)
        writer.write_index(page, lemmas)
        pages[owner.url + path] = page
    return pages


@pytest.fixture
def engine(db, extractor):
    return SearchEngine(db, extractor)


@pytest.mark.unit
class TestQueryValidation:
    @pytest.mark.parametrize("query", ["", "   ", None])
    def test_empty_query_fails_before_lemmatization(self, db, query):
        extractor = Mock(spec=LemmaExtractor)
        response = SearchEngine(db, extractor).search(query)

        assert not response.success
        assert response.error == EMPTY_QUERY
        extractor.distinct_lemmas.assert_not_called()

    def test_query_of_functional_words(self, engine, index):
        response = engine.search("the on and")
        assert not response.success
        assert response.error == UNPROCESSABLE_QUERY

    @pytest.mark.parametrize("offset,limit", [(-1, 10), (0, 0), (0, -5)])
    def test_invalid_pagination(self, engine, index, offset, limit):
        response = engine.search("cat", offset=offset, limit=limit)
        assert response.error == INVALID_PAGINATION

    def test_unknown_site(self, engine, index):
        response = engine.search("cat", site="https://unknown.net")
        assert not response.success
        assert response.error == UNKNOWN_SITE


@pytest.mark.unit
class TestSearch:
    def test_all_query_lemmas_must_match(self, engine, index):
        response = engine.search("cat mat")

        assert response.success
        assert response.total_count == 1
        [result] = response.results
        assert (result.site, result.uri) == (ROOT, "/a")
        assert result.relevance == 2.0

    def test_missing_lemma_gives_no_results(self, engine, index):
        response = engine.search("cat unicorn")

        assert response.success
        assert response.total_count == 0
        assert response.results == []

    def test_results_sorted_by_relevance_then_page(self, engine, index):
        response = engine.search("cats")

        assert response.total_count == 4
        assert [(r.site, r.uri) for r in response.results] == [
            (OTHER, "/"), (ROOT, "/b"), (ROOT, "/c"), (ROOT, "/a"),
        ]
        assert [r.relevance for r in response.results] == [5.0, 2.0, 2.0, 1.0]

    def test_pagination(self, engine, index):
        response = engine.search("cat", offset=1, limit=2)

        assert response.total_count == 4
        assert [r.uri for r in response.results] == ["/b", "/c"]

    def test_offset_beyond_results(self, engine, index):
        response = engine.search("cat", offset=10)
        assert response.success
        assert response.total_count == 4
        assert response.results == []

    def test_site_filter(self, engine, index):
        response = engine.search("cat", site=ROOT + "/")

        assert response.total_count == 3
        assert {r.site for r in response.results} == {ROOT}
        assert all(r.site_name == "Example" for r in response.results)

    def test_duplicate_query_words_count_once(self, engine, index):
        response = engine.search("cat cats mat")
        assert [r.relevance for r in response.results] == [2.0]

    def test_snippet_highlights_match_with_page_link(self, engine, index):
        [result] = engine.search("mat").results

        assert result.title == "Page A"
        assert f'<b><a href="{ROOT}/a#match-mat">mat</a></b>' in result.snippet

    def test_response_serialization(self, engine, index):
        data = engine.search("cat mat").to_dict()

        assert data["result"] is True
        assert data["count"] == 1
        assert data["data"][0]["siteName"] == "Example"
        assert data["data"][0]["uri"] == "/a"
        assert engine.search("").to_dict() == {"result": False, "error": EMPTY_QUERY}

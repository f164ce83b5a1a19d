"""Shared fixtures."""

import pytest

from site_search.database import Database
from site_search.lemmatizer import LemmaExtractor

from fakes import FakeAnalyzer


@pytest.fixture
def db(tmp_path):
    database = Database(str(tmp_path / "search.db"))
    yield database
    database.close()


@pytest.fixture
def extractor():
    return LemmaExtractor({"en": FakeAnalyzer()})

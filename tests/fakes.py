"""Deterministic stand-ins for the morphological analyzer and the HTTP fetcher."""

import threading
from typing import Dict, List, Optional, Tuple

from site_search.fetcher import FetchResult
from site_search.lemmatizer import Analyzer

ROOT = "https://example.com"

ENGLISH_WORDS: Dict[str, Tuple[List[str], List[str]]] = {
    "the": (["the"], ["PRCL"]),
    "a": (["a"], ["PRCL"]),
    "on": (["on"], ["PREP"]),
    "in": (["in"], ["PREP"]),
    "and": (["and"], ["CONJ"]),
    "oh": (["oh"], ["INTJ"]),
    "sat": (["sit"], ["VERB"]),
    "cats": (["cat"], ["NOUN"]),
    "dogs": (["dog"], ["NOUN"]),
    "mats": (["mat"], ["NOUN"]),
    "like": (["like"], ["VERB", "PREP"]),
}


class FakeAnalyzer(Analyzer):
    """Dictionary-backed analyzer; unknown words are their own lemma."""

    language = "en"

    def __init__(self, words: Optional[Dict[str, Tuple[List[str], List[str]]]] = None):
        self.words = ENGLISH_WORDS if words is None else words

    def _lookup(self, word: str) -> Tuple[List[str], List[str]]:
        if word == "broken":
            raise ValueError("dictionary is corrupted")
        if word == "unknownword":
            return [], []
        return self.words.get(word, ([word], ["NOUN"]))

    def normal_forms(self, word: str) -> List[str]:
        return list(self._lookup(word)[0])

    def grammatical_tags(self, word: str) -> List[str]:
        return list(self._lookup(word)[1])


def html_page(body: str, links: List[str] = (), title: str = "") -> FetchResult:
    anchors = "".join(f'<a href="{link}">link</a>' for link in links)
    html = f"<html><head><title>{title}</title></head><body><p>{body}</p>{anchors}</body></html>"
    return FetchResult(url="", status_code=200, content_type="text/html; charset=utf-8",
                       content=html.encode("utf-8"))


class FakeFetcher:
    """Serves canned responses; unknown URLs answer 404."""

    def __init__(self, pages: Dict[str, FetchResult], gate: Optional[threading.Event] = None):
        self.pages = pages
        self.gate = gate
        self.entered = threading.Event()
        self.fetched: List[str] = []
        self.delays = 0
        self._lock = threading.Lock()

    def politeness_delay(self) -> float:
        with self._lock:
            self.delays += 1
        return 0.0

    def fetch(self, url: str) -> FetchResult:
        with self._lock:
            self.fetched.append(url)
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)

        result = self.pages.get(url)
        if result is None:
            return FetchResult(url=url, status_code=404, content_type="text/html", error="HTTP status 404")
        return FetchResult(url=url, status_code=result.status_code, content_type=result.content_type,
                           content=result.content, error=result.error,
                           final_url=result.final_url or url)


def example_site() -> Dict[str, FetchResult]:
    return {
        ROOT: html_page(
            "The cats sat on the mat",
            links=["/a", "/b", "https://other.com/x", "mailto:someone@example.com", "/file.pdf", "#top"],
            title="Home",
        ),
        ROOT + "/a": html_page("A dog and a cat", links=["/", "/b", "/c", "/missing"], title="Page A"),
        ROOT + "/b": html_page("Dogs like mats", title="Page B"),
        ROOT + "/c": FetchResult(url="", status_code=200, content_type="image/png", content=b"\x89PNG"),
    }

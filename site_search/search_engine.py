"""
Модуль полнотекстового поиска
"""

from collections import defaultdict
from typing import List, Dict, Optional

from site_search.config import SEARCH_CONFIG
from site_search.database import Database
from site_search.lemmatizer import LemmaExtractor
from site_search.models import SearchResponse, SearchResult
from site_search.utils import generate_snippet, normalize_root, logger

EMPTY_QUERY = "Empty search query"
UNPROCESSABLE_QUERY = "Could not process the query"
INVALID_PAGINATION = "Offset must be non-negative and limit must be positive"
UNKNOWN_SITE = "Site is not indexed"


class SearchEngine:
    """Класс полнотекстового поиска"""

    def __init__(self, db: Database, extractor: LemmaExtractor):
        self.db = db
        self.extractor = extractor
        self.snippet_length = SEARCH_CONFIG['snippet_length']
        self.snippet_lead = SEARCH_CONFIG['snippet_lead']

        logger.info("SearchEngine initialized")

    def find_matches(self, lemmas: List[str], site_url: Optional[str] = None) -> Dict[int, float]:
        """
        Страницы, содержащие все леммы запроса, с суммой рангов.
        Пересечение начинается с самого короткого списка словопозиций
        """
        postings = [self.db.get_postings_for_lemma(lemma, site_url) for lemma in lemmas]
        postings.sort(key=len)

        if not postings or not postings[0]:
            return {}

        scores = defaultdict(float)
        candidates = set(postings[0])
        for posting_list in postings:
            candidates &= set(posting_list)
            if not candidates:
                return {}

        # Суммарный ранг по всем леммам запроса
        for posting_list in postings:
            for page_id in candidates:
                scores[page_id] += posting_list[page_id]

        return dict(scores)

    def search(self, query: str, site: Optional[str] = None,
               offset: int = 0, limit: int = SEARCH_CONFIG['results_per_page']) -> SearchResponse:
        """
        Основной метод поиска
        """
        if query is None or not query.strip():
            return SearchResponse.failure(EMPTY_QUERY)
        if offset < 0 or limit <= 0:
            return SearchResponse.failure(INVALID_PAGINATION)

        site_url = normalize_root(site) if site else None
        if site_url and self.db.find_site_by_url(site_url) is None:
            return SearchResponse.failure(UNKNOWN_SITE)

        lemmas = self.extractor.distinct_lemmas(query)
        if not lemmas:
            return SearchResponse.failure(UNPROCESSABLE_QUERY)

        logger.info(f"Searching for: '{query}' (lemmas: {lemmas}, site: {site_url or 'all'})")

        scores = self.find_matches(lemmas, site_url)

        # Сортировка по убыванию релевантности, при равенстве - по id страницы
        ranked = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
        page_slice = ranked[offset:offset + limit]

        pages = self.db.get_pages_with_sites([page_id for page_id, _ in page_slice])

        results = []
        for page_id, relevance in page_slice:
            if page_id not in pages:
                continue
            page, page_site = pages[page_id]
            snippet = generate_snippet(page.content, lemmas, page_site.url + page.path,
                                       self.snippet_length, self.snippet_lead)
            results.append(SearchResult(
                site=page_site.url,
                site_name=page_site.name,
                uri=page.path,
                title=page.title,
                snippet=snippet,
                relevance=relevance,
                page_id=page_id,
            ))

        logger.info(f"Found {len(ranked)} results for query: '{query}'")
        return SearchResponse(success=True, total_count=len(ranked), results=results)

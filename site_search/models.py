"""
Модели данных поискового движка
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any


class SiteStatus(Enum):
    CRAWLING = "CRAWLING"
    INDEXED = "INDEXED"
    FAILED = "FAILED"


class CrawlState(Enum):
    """Состояния задачи обхода одной страницы"""
    PENDING = "pending"
    OUT_OF_SCOPE = "out_of_scope"
    DUPLICATE = "duplicate"
    CANCELLED = "cancelled"
    FETCHING = "fetching"
    FETCH_ERROR = "fetch_error"
    FETCHED = "fetched"
    NON_HTML_STORED = "non_html_stored"
    HTML_INDEXED = "html_indexed"
    LINKS_EXPANDED = "links_expanded"


@dataclass
class Site:
    """Индексируемый сайт"""
    id: int
    url: str
    name: str
    status: SiteStatus
    status_time: datetime
    last_error: Optional[str] = None


@dataclass
class Page:
    """Страница сайта"""
    id: int
    site_id: int
    path: str
    code: int
    title: str = ""
    content: str = ""


@dataclass
class Lemma:
    """Лемма словаря сайта"""
    id: int
    site_id: int
    lemma: str
    frequency: int


@dataclass
class SearchResult:
    """Один результат поиска"""
    site: str
    site_name: str
    uri: str
    title: str
    snippet: str
    relevance: float
    page_id: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'site': self.site,
            'siteName': self.site_name,
            'uri': self.uri,
            'title': self.title,
            'snippet': self.snippet,
            'relevance': self.relevance,
        }


@dataclass
class SearchResponse:
    """Ответ поиска: либо результаты, либо сообщение об ошибке"""
    success: bool
    total_count: int = 0
    results: List[SearchResult] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def failure(cls, error: str) -> 'SearchResponse':
        return cls(success=False, error=error)

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {'result': False, 'error': self.error}
        return {
            'result': True,
            'count': self.total_count,
            'data': [result.to_dict() for result in self.results],
        }

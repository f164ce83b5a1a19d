"""
Модуль обхода сайта
"""

import concurrent.futures as cf
import threading
from collections import Counter
from typing import List, Dict, Optional, Tuple

from site_search.config import INDEXING_CONFIG
from site_search.database import Database
from site_search.fetcher import PageFetcher
from site_search.indexer import IndexWriter
from site_search.lemmatizer import LemmaExtractor
from site_search.models import Site, CrawlState
from site_search.utils import (normalize_root, normalize_url, site_relative_path,
                               is_in_scope, parse_html, logger)


class VisitedSet:
    """Потокобезопасное множество посещенных путей одного обхода"""

    def __init__(self):
        self._items = set()
        self._lock = threading.Lock()

    def add_if_absent(self, key: str) -> bool:
        """Атомарная проверка и добавление; True, если ключа не было"""
        with self._lock:
            if key in self._items:
                return False
            self._items.add(key)
            return True

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class SiteCrawler:
    """
    Обход одного сайта пулом потоков.

    Каждая задача обрабатывает одну страницу и возвращает найденные
    дочерние ссылки; crawl() ставит их в пул и завершается только
    после того, как завершены все задачи дерева обхода.
    """

    def __init__(self, db: Database, site: Site, fetcher: PageFetcher, extractor: LemmaExtractor,
                 index_writer: IndexWriter, stop_event: threading.Event,
                 max_workers: int = INDEXING_CONFIG['max_workers'],
                 max_pages: Optional[int] = INDEXING_CONFIG['max_pages'],
                 scope_root: Optional[str] = None):
        self.db = db
        self.site = site
        self.fetcher = fetcher
        self.extractor = extractor
        self.index_writer = index_writer
        self.stop_event = stop_event
        self.max_workers = max_workers
        self.max_pages = max_pages
        self.scope_root = normalize_root(scope_root or site.url)

        self.visited = VisitedSet()
        self.stats: Counter = Counter()
        self.start_url: Optional[str] = None
        self.start_error: Optional[str] = None

        self._fetch_count = 0
        self._fetch_lock = threading.Lock()

    def is_cancelled(self) -> bool:
        return self.stop_event.is_set()

    def crawl(self, start_url: Optional[str] = None) -> Dict[CrawlState, int]:
        """
        Основной метод обхода
        Возвращает: количество задач по конечным состояниям
        """
        self.start_url = normalize_url(self.scope_root, start_url or self.scope_root)
        logger.info(f"Crawling {self.site.url} from {self.start_url} with {self.max_workers} workers")

        with cf.ThreadPoolExecutor(max_workers=self.max_workers,
                                   thread_name_prefix=f"crawl-{self.site.id}") as pool:
            pending = {pool.submit(self.process_url, self.start_url)}

            while pending:
                done, pending = cf.wait(pending, return_when=cf.FIRST_COMPLETED)
                for future in done:
                    state, children = future.result()
                    self.stats[state] += 1

                    for child in children:
                        if self.is_cancelled():
                            break
                        pending.add(pool.submit(self.process_url, child))

                processed = sum(self.stats.values())
                if processed % 50 == 0:
                    logger.info(f"Progress for {self.site.url}: {processed} tasks done, {len(pending)} pending")

        logger.info(f"Crawling of {self.site.url} completed: "
                    + ", ".join(f"{state.value}={count}" for state, count in self.stats.items()))
        return dict(self.stats)

    def process_url(self, url: str) -> Tuple[CrawlState, List[str]]:
        """Обработка одной страницы; ошибки не выходят за пределы задачи"""
        try:
            return self._process(url)
        except Exception as e:
            logger.error(f"Error processing {url}: {e}")
            return CrawlState.FETCH_ERROR, []

    def _reserve_fetch(self) -> bool:
        """Учет ограничения на число загружаемых страниц"""
        with self._fetch_lock:
            if self.max_pages is not None and self._fetch_count >= self.max_pages:
                return False
            self._fetch_count += 1
            return True

    def _process(self, url: str) -> Tuple[CrawlState, List[str]]:
        if self.is_cancelled():
            logger.debug(f"Crawling stopped before processing {url}")
            return CrawlState.CANCELLED, []

        path = site_relative_path(url)
        if path is None:
            return CrawlState.OUT_OF_SCOPE, []
        if not self.visited.add_if_absent(path):
            logger.debug(f"Already visited: {url}")
            return CrawlState.DUPLICATE, []

        if not is_in_scope(url, self.scope_root):
            logger.debug(f"Out of scope: {url}")
            return CrawlState.OUT_OF_SCOPE, []

        if not self._reserve_fetch():
            logger.debug(f"Page limit reached, skipping {url}")
            return CrawlState.CANCELLED, []

        self.fetcher.politeness_delay()
        if self.is_cancelled():
            logger.debug(f"Crawling stopped before fetching {url}")
            return CrawlState.CANCELLED, []

        result = self.fetcher.fetch(url)
        if not result.ok:
            if url == self.start_url:
                self.start_error = result.error
            self.db.add_page(self.site.id, path, result.status_code, content=f"Fetch error: {result.error}")
            return CrawlState.FETCH_ERROR, []

        if self.db.exists_page(self.site.id, path):
            logger.info(f"Page {url} already exists, skipping")
            return CrawlState.DUPLICATE, []

        # Разбор по типу контента
        if result.is_binary:
            self.db.add_page(self.site.id, path, result.status_code,
                             content=f"Binary content: {result.content_type}")
            return CrawlState.NON_HTML_STORED, []

        if not result.is_html:
            self.db.add_page(self.site.id, path, result.status_code,
                             content=f"Unhandled content type: {result.content_type}")
            return CrawlState.NON_HTML_STORED, []

        title, text, links = parse_html(result.content, result.base_url)
        lemma_frequencies = self.extractor.count_lemmas(text, markup=False)

        page = self.db.add_page(self.site.id, path, result.status_code, title, text)
        if page is None:
            return CrawlState.DUPLICATE, []
        self.index_writer.write_index(page, lemma_frequencies)

        children = self.expand_links(links)
        if children is None:
            return CrawlState.HTML_INDEXED, []
        return CrawlState.LINKS_EXPANDED, children

    def expand_links(self, links: List[str]) -> Optional[List[str]]:
        """
        Дочерние ссылки страницы в пределах сайта, еще не посещенные.
        None, если обход остановлен во время разбора ссылок
        """
        children = []
        keys = set()
        for link in links:
            if self.is_cancelled():
                logger.debug("Crawling stopped while expanding links")
                return None

            if not is_in_scope(link, self.scope_root):
                continue

            key = site_relative_path(link)
            if key is None or key in keys or key in self.visited:
                continue

            keys.add(key)
            children.append(link)

        return children

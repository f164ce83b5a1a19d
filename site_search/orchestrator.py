"""
Управление индексацией сайтов
"""

import concurrent.futures as cf
import threading
from typing import List, Dict, Any, Optional, Callable

from site_search.config import INDEXING_CONFIG, SITES
from site_search.crawler import SiteCrawler
from site_search.database import Database
from site_search.fetcher import PageFetcher
from site_search.indexer import IndexWriter
from site_search.lemmatizer import LemmaExtractor
from site_search.models import SiteStatus
from site_search.utils import normalize_root, normalize_url, is_in_scope, logger

STOPPED_BY_USER = "Indexing stopped by user"
TIMED_OUT = "Indexing timed out"


class IndexingService:
    """
    Полная и постраничная индексация настроенных сайтов.

    Сайты индексируются параллельно и независимо друг от друга.
    Переходы статусов сайтов выполняются под одной блокировкой
    с stop(), поэтому после остановки ни один сайт не остается
    в статусе CRAWLING.
    """

    def __init__(self, db: Database, extractor: LemmaExtractor,
                 sites: Optional[List[Dict[str, Any]]] = None,
                 fetcher_factory: Callable[[], PageFetcher] = PageFetcher,
                 config: Optional[Dict[str, Any]] = None):
        self.db = db
        self.extractor = extractor
        self.sites = [{'name': site['name'], 'url': normalize_root(site['url'])}
                      for site in (SITES if sites is None else sites)]
        self.fetcher_factory = fetcher_factory
        self.config = config or INDEXING_CONFIG
        self.index_writer = IndexWriter(db)

        self._lock = threading.Lock()
        self._status_lock = threading.RLock()
        self._in_progress = False
        self._stop_event = threading.Event()
        self._executor: Optional[cf.ThreadPoolExecutor] = None
        self._futures: List[cf.Future] = []
        self._runner: Optional[threading.Thread] = None

    def is_indexing_in_progress(self) -> bool:
        with self._lock:
            return self._in_progress

    def start(self) -> bool:
        """Запуск полной индексации в фоне; False, если она уже идет"""
        with self._lock:
            if self._in_progress:
                logger.warning("Indexing is already in progress")
                return False
            if not self.sites:
                logger.warning("Site list is empty, nothing to index")
                return False

            self._in_progress = True
            self._stop_event = threading.Event()
            self._runner = threading.Thread(target=self._run, args=(self._stop_event,),
                                            name='indexing', daemon=True)
            self._runner.start()

        logger.info(f"Indexing started for {len(self.sites)} sites")
        return True

    def stop(self) -> bool:
        """Остановка индексации; False, если она не запущена"""
        with self._lock:
            if not self._in_progress:
                logger.warning("Indexing is not in progress, nothing to stop")
                return False
            stop_event = self._stop_event
            executor = self._executor
            futures = list(self._futures)

        logger.info("Stopping indexing at user request")
        with self._status_lock:
            stop_event.set()
            self.db.fail_crawling_sites(STOPPED_BY_USER)

        if executor is not None:
            _, not_done = cf.wait(futures, timeout=self.config['stop_timeout'])
            if not_done:
                logger.error(f"{len(not_done)} site task(s) did not finish in time, cancelling")
            executor.shutdown(wait=False, cancel_futures=True)

        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Ожидание завершения фоновой индексации"""
        runner = self._runner
        if runner is not None:
            runner.join(timeout)
        return not self.is_indexing_in_progress()

    def _run(self, stop_event: threading.Event):
        """Индексация всех сайтов пулом потоков"""
        executor = cf.ThreadPoolExecutor(max_workers=len(self.sites), thread_name_prefix='site')
        try:
            futures = [executor.submit(self.index_site, site, stop_event) for site in self.sites]
            with self._lock:
                self._executor = executor
                self._futures = futures

            _, not_done = cf.wait(futures, timeout=self.config['crawl_timeout'])
            if not_done:
                logger.error(f"Indexing timed out after {self.config['crawl_timeout']} s")
                with self._status_lock:
                    stop_event.set()
                    self.db.fail_crawling_sites(TIMED_OUT)

                # Флаг индексации снимается только после завершения потоков сайтов
                _, not_done = cf.wait(not_done, timeout=self.config['stop_timeout'])
                if not_done:
                    logger.warning(f"{len(not_done)} site task(s) still running after timeout, waiting for them")
                    cf.wait(not_done)

        except Exception as e:
            logger.error(f"Indexing error: {e}")
            with self._status_lock:
                stop_event.set()
                self.db.fail_crawling_sites(str(e))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
            with self._lock:
                self._in_progress = False
                self._executor = None
                self._futures = []
            logger.info("Indexing finished")

    def index_site(self, site_config: Dict[str, Any], stop_event: threading.Event,
                   start_url: Optional[str] = None) -> bool:
        """
        Индексация одного сайта: удаление старых данных, создание сайта,
        обход и итоговый статус. True, если сайт проиндексирован
        """
        url = normalize_root(site_config['url'])
        name = site_config['name']

        with self._status_lock:
            if stop_event.is_set():
                logger.info(f"Indexing stopped, site {url} is skipped")
                return False
            self.db.delete_site(url)
            site = self.db.create_site(url, name)

        logger.info(f"Indexing site: {name} ({url})")
        try:
            crawler = SiteCrawler(
                self.db, site, self.fetcher_factory(), self.extractor, self.index_writer, stop_event,
                max_workers=self.config['max_workers'],
                max_pages=self.config.get('max_pages'),
            )
            crawler.crawl(start_url or url)
            if crawler.start_error:
                raise RuntimeError(f"Start page is unavailable: {crawler.start_error}")

        except Exception as e:
            logger.error(f"Error indexing site {url}: {e}")
            with self._status_lock:
                self.db.update_site_status(site.id, SiteStatus.FAILED, str(e))
            return False

        with self._status_lock:
            if stop_event.is_set():
                current = self.db.get_site(site.id)
                if current is not None and current.status == SiteStatus.CRAWLING:
                    self.db.update_site_status(site.id, SiteStatus.FAILED, STOPPED_BY_USER)
                logger.warning(f"Indexing of {url} was interrupted, site marked as FAILED")
                return False
            self.db.update_site_status(site.id, SiteStatus.INDEXED)

        logger.info(f"Site {url} indexed")
        return True

    def find_site_config(self, url: str) -> Optional[Dict[str, Any]]:
        """Настроенный сайт, которому принадлежит URL"""
        for site in self.sites:
            if is_in_scope(url, site['url']):
                return site
        return None

    def index_single_page(self, url: str) -> bool:
        """
        Переиндексация сайта, начиная с указанной страницы.
        Выполняется синхронно
        """
        if not url or not url.strip():
            logger.warning("Empty URL for page indexing")
            return False

        url = normalize_url("", url.strip())
        site_config = self.find_site_config(url)
        if site_config is None:
            logger.warning(f"URL does not belong to any configured site: {url}")
            return False

        with self._lock:
            if self._in_progress:
                logger.warning(f"Indexing is in progress, page {url} is not indexed")
                return False
            self._in_progress = True
            self._stop_event = threading.Event()
            stop_event = self._stop_event

        try:
            return self.index_site(site_config, stop_event, start_url=url)
        finally:
            with self._lock:
                self._in_progress = False

"""
Модуль загрузки веб-страниц
"""

import random
import threading
import time
from dataclasses import dataclass
from typing import Dict, Any, Optional

import requests

from site_search.config import PARSER_CONFIG, BINARY_CONTENT_TYPES
from site_search.utils import logger


@dataclass
class FetchResult:
    """Результат загрузки одной страницы"""
    url: str
    status_code: int
    content_type: str = ""
    content: bytes = b""
    error: Optional[str] = None
    final_url: Optional[str] = None

    @property
    def base_url(self) -> str:
        """Адрес после перенаправлений: от него разрешаются относительные ссылки"""
        return self.final_url or self.url

    @property
    def ok(self) -> bool:
        return self.error is None and 200 <= self.status_code < 300

    @property
    def is_html(self) -> bool:
        return 'text/html' in self.content_type.lower()

    @property
    def is_binary(self) -> bool:
        return self.content_type.lower().startswith(BINARY_CONTENT_TYPES)


class PageFetcher:
    """Загрузка страниц с фиксированными заголовками и вежливой задержкой"""

    def __init__(self, config: Optional[Dict[str, Any]] = None, session: Optional[requests.Session] = None):
        self.config = config or PARSER_CONFIG
        self.headers = {
            'User-Agent': self.config['user_agent'],
            'Referer': self.config['referrer'],
        }
        self.timeout = (self.config['connect_timeout'], self.config['read_timeout'])
        self.max_content_length = self.config['max_content_length']
        self._session = session
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        """Сессия requests: общая, если передана, иначе своя у каждого потока"""
        if self._session is not None:
            return self._session
        if getattr(self._local, 'session', None) is None:
            self._local.session = requests.Session()
        return self._local.session

    def politeness_delay(self) -> float:
        """Случайная пауза перед запросом"""
        delay = random.uniform(self.config['delay_min'], self.config['delay_max'])
        time.sleep(delay)
        return delay

    def fetch(self, url: str) -> FetchResult:
        """Загрузка страницы; ошибки возвращаются в результате, а не исключением"""
        logger.info(f"Fetching: {url}")
        try:
            response = self.session.get(url, headers=self.headers, timeout=self.timeout, allow_redirects=True)
        except requests.RequestException as e:
            status = e.response.status_code if getattr(e, 'response', None) is not None else 0
            logger.warning(f"Error downloading {url}: {e}")
            return FetchResult(url=url, status_code=status, error=str(e))

        content_type = response.headers.get('content-type', '')
        status = response.status_code

        if not 200 <= status < 300:
            logger.warning(f"Unexpected status {status} for {url}")
            return FetchResult(url=url, status_code=status, content_type=content_type,
                               error=f"HTTP status {status}")

        content = response.content
        if len(content) > self.max_content_length:
            logger.warning(f"Content too large for {url}, skipping")
            return FetchResult(url=url, status_code=status, content_type=content_type,
                               error=f"Content too large: {len(content)} bytes")

        return FetchResult(url=url, status_code=status, content_type=content_type, content=content,
                           final_url=response.url or url)

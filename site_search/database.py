"""
Модуль для работы с базой данных
"""

import sqlite3
import threading
from datetime import datetime
from typing import List, Dict, Any, Optional, Tuple

from site_search.config import DATABASE_CONFIG
from site_search.models import Site, Page, Lemma, SiteStatus
from site_search.utils import logger


class Database:
    """
    Класс для работы с базой данных поискового движка.

    Одно соединение sqlite3 используется всеми потоками обхода,
    каждый метод выполняется под общей блокировкой. Уникальность
    страниц, лемм и связей гарантируется ограничениями схемы.
    """

    def __init__(self, db_name: str = DATABASE_CONFIG['db_name']):
        self.db_name = db_name
        self.conn = None
        self.cursor = None
        self._lock = threading.RLock()
        self._initialize_database()

    def _initialize_database(self):
        """Инициализация базы данных и создание таблиц"""
        try:
            self.conn = sqlite3.connect(self.db_name, check_same_thread=False)
            self.conn.row_factory = sqlite3.Row
            self.cursor = self.conn.cursor()
            self.cursor.execute('PRAGMA foreign_keys = ON')

            # Таблица сайтов
            self.cursor.execute('''
                CREATE TABLE IF NOT EXISTS sites (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    url TEXT UNIQUE NOT NULL,
                    name TEXT NOT NULL,
                    status TEXT NOT NULL CHECK (status IN ('CRAWLING', 'INDEXED', 'FAILED')),
                    status_time TIMESTAMP NOT NULL,
                    last_error TEXT
                )
            ''')

            # Таблица страниц
            self.cursor.execute('''
                CREATE TABLE IF NOT EXISTS pages (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    site_id INTEGER NOT NULL,
                    path TEXT NOT NULL,
                    code INTEGER NOT NULL,
                    title TEXT,
                    content TEXT,
                    FOREIGN KEY (site_id) REFERENCES sites (id) ON DELETE CASCADE,
                    UNIQUE(site_id, path)
                )
            ''')

            # Таблица лемм
            self.cursor.execute('''
                CREATE TABLE IF NOT EXISTS lemmas (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    site_id INTEGER NOT NULL,
                    lemma TEXT NOT NULL,
                    frequency INTEGER NOT NULL DEFAULT 0,
                    FOREIGN KEY (site_id) REFERENCES sites (id) ON DELETE CASCADE,
                    UNIQUE(site_id, lemma)
                )
            ''')

            # Таблица обратного индекса
            self.cursor.execute('''
                CREATE TABLE IF NOT EXISTS postings (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    page_id INTEGER NOT NULL,
                    lemma_id INTEGER NOT NULL,
                    rank REAL NOT NULL,
                    FOREIGN KEY (page_id) REFERENCES pages (id) ON DELETE CASCADE,
                    FOREIGN KEY (lemma_id) REFERENCES lemmas (id) ON DELETE CASCADE,
                    UNIQUE(page_id, lemma_id)
                )
            ''')

            self.cursor.execute('CREATE INDEX IF NOT EXISTS idx_lemmas_lemma ON lemmas (lemma)')
            self.cursor.execute('CREATE INDEX IF NOT EXISTS idx_postings_lemma ON postings (lemma_id)')

            self.conn.commit()
            logger.info(f"Database initialized successfully: {self.db_name}")

        except sqlite3.Error as e:
            logger.error(f"Database initialization error: {e}")
            if self.conn:
                self.conn.rollback()
            raise

    @staticmethod
    def _site_from_row(row: sqlite3.Row) -> Site:
        return Site(
            id=row['id'],
            url=row['url'],
            name=row['name'],
            status=SiteStatus(row['status']),
            status_time=datetime.fromisoformat(row['status_time']),
            last_error=row['last_error'],
        )

    @staticmethod
    def _page_from_row(row: sqlite3.Row) -> Page:
        return Page(
            id=row['id'],
            site_id=row['site_id'],
            path=row['path'],
            code=row['code'],
            title=row['title'] or "",
            content=row['content'] or "",
        )

    # ---------- Сайты ----------

    def find_site_by_url(self, url: str) -> Optional[Site]:
        """Поиск сайта по корневому URL"""
        with self._lock:
            try:
                self.cursor.execute('SELECT * FROM sites WHERE url = ?', (url,))
                row = self.cursor.fetchone()
                return self._site_from_row(row) if row else None
            except sqlite3.Error as e:
                logger.error(f"Error finding site {url}: {e}")
                return None

    def get_site(self, site_id: int) -> Optional[Site]:
        with self._lock:
            try:
                self.cursor.execute('SELECT * FROM sites WHERE id = ?', (site_id,))
                row = self.cursor.fetchone()
                return self._site_from_row(row) if row else None
            except sqlite3.Error as e:
                logger.error(f"Error getting site {site_id}: {e}")
                return None

    def get_all_sites(self) -> List[Site]:
        with self._lock:
            try:
                self.cursor.execute('SELECT * FROM sites ORDER BY id')
                return [self._site_from_row(row) for row in self.cursor.fetchall()]
            except sqlite3.Error as e:
                logger.error(f"Error getting all sites: {e}")
                return []

    def create_site(self, url: str, name: str, status: SiteStatus = SiteStatus.CRAWLING) -> Site:
        """Создание сайта со статусом CRAWLING"""
        with self._lock:
            try:
                now = datetime.now()
                self.cursor.execute('''
                    INSERT INTO sites (url, name, status, status_time)
                    VALUES (?, ?, ?, ?)
                ''', (url, name, status.value, now.isoformat()))
                site_id = self.cursor.lastrowid
                self.conn.commit()
                logger.debug(f"Site created: {url} (ID: {site_id})")
                return Site(id=site_id, url=url, name=name, status=status, status_time=now)

            except sqlite3.Error as e:
                logger.error(f"Error creating site {url}: {e}")
                self.conn.rollback()
                raise

    def update_site_status(self, site_id: int, status: SiteStatus, last_error: Optional[str] = None):
        """Обновление статуса сайта и времени статуса"""
        with self._lock:
            try:
                self.cursor.execute('''
                    UPDATE sites
                    SET status = ?, status_time = ?, last_error = COALESCE(?, last_error)
                    WHERE id = ?
                ''', (status.value, datetime.now().isoformat(), last_error, site_id))
                self.conn.commit()

            except sqlite3.Error as e:
                logger.error(f"Error updating status of site {site_id}: {e}")
                self.conn.rollback()
                raise

    def fail_crawling_sites(self, error: str) -> int:
        """Перевод всех сайтов в статусе CRAWLING в FAILED"""
        with self._lock:
            try:
                self.cursor.execute('''
                    UPDATE sites
                    SET status = ?, status_time = ?, last_error = ?
                    WHERE status = ?
                ''', (SiteStatus.FAILED.value, datetime.now().isoformat(), error, SiteStatus.CRAWLING.value))
                updated = self.cursor.rowcount
                self.conn.commit()
                if updated:
                    logger.info(f"{updated} crawling site(s) marked as FAILED: {error}")
                return updated

            except sqlite3.Error as e:
                logger.error(f"Error failing crawling sites: {e}")
                self.conn.rollback()
                raise

    def delete_site(self, url: str) -> bool:
        """
        Удаление сайта вместе со страницами, леммами и индексом
        Возвращает False, если сайта не было
        """
        with self._lock:
            try:
                self.cursor.execute('SELECT id FROM sites WHERE url = ?', (url,))
                row = self.cursor.fetchone()
                if not row:
                    logger.debug(f"Site {url} not found in database, nothing to delete")
                    return False

                site_id = row['id']
                self.cursor.execute('''
                    DELETE FROM postings
                    WHERE page_id IN (SELECT id FROM pages WHERE site_id = ?)
                ''', (site_id,))
                postings_deleted = self.cursor.rowcount
                self.cursor.execute('DELETE FROM lemmas WHERE site_id = ?', (site_id,))
                lemmas_deleted = self.cursor.rowcount
                self.cursor.execute('DELETE FROM pages WHERE site_id = ?', (site_id,))
                pages_deleted = self.cursor.rowcount
                self.cursor.execute('DELETE FROM sites WHERE id = ?', (site_id,))
                self.conn.commit()

                logger.info(f"Site {url} deleted: {pages_deleted} pages, "
                            f"{lemmas_deleted} lemmas, {postings_deleted} postings")
                return True

            except sqlite3.Error as e:
                logger.error(f"Error deleting site {url}: {e}")
                self.conn.rollback()
                raise

    # ---------- Страницы ----------

    def exists_page(self, site_id: int, path: str) -> bool:
        with self._lock:
            try:
                self.cursor.execute('SELECT 1 FROM pages WHERE site_id = ? AND path = ?', (site_id, path))
                return self.cursor.fetchone() is not None
            except sqlite3.Error as e:
                logger.error(f"Error checking page {path} of site {site_id}: {e}")
                return False

    def add_page(self, site_id: int, path: str, code: int, title: str = "", content: str = "") -> Optional[Page]:
        """
        Добавление страницы. Страница не перезаписывается:
        при повторном пути возвращается None
        """
        with self._lock:
            try:
                self.cursor.execute('''
                    INSERT INTO pages (site_id, path, code, title, content)
                    VALUES (?, ?, ?, ?, ?)
                ''', (site_id, path, code, title, content))
                page_id = self.cursor.lastrowid
                self.conn.commit()
                logger.debug(f"Page added: {path} (ID: {page_id}, code: {code})")
                return Page(id=page_id, site_id=site_id, path=path, code=code, title=title, content=content)

            except sqlite3.IntegrityError:
                self.conn.rollback()
                logger.info(f"Page {path} of site {site_id} already exists, skipping")
                return None
            except sqlite3.Error as e:
                logger.error(f"Error adding page {path}: {e}")
                self.conn.rollback()
                raise

    def get_page(self, page_id: int) -> Optional[Page]:
        with self._lock:
            try:
                self.cursor.execute('SELECT * FROM pages WHERE id = ?', (page_id,))
                row = self.cursor.fetchone()
                return self._page_from_row(row) if row else None
            except sqlite3.Error as e:
                logger.error(f"Error getting page {page_id}: {e}")
                return None

    def get_site_pages(self, site_id: int) -> List[Page]:
        with self._lock:
            try:
                self.cursor.execute('SELECT * FROM pages WHERE site_id = ? ORDER BY id', (site_id,))
                return [self._page_from_row(row) for row in self.cursor.fetchall()]
            except sqlite3.Error as e:
                logger.error(f"Error getting pages of site {site_id}: {e}")
                return []

    # ---------- Леммы и индекс ----------

    def find_lemma(self, site_id: int, lemma: str) -> Optional[Lemma]:
        with self._lock:
            try:
                self.cursor.execute('SELECT * FROM lemmas WHERE site_id = ? AND lemma = ?', (site_id, lemma))
                row = self.cursor.fetchone()
                if not row:
                    return None
                return Lemma(id=row['id'], site_id=row['site_id'], lemma=row['lemma'], frequency=row['frequency'])
            except sqlite3.Error as e:
                logger.error(f"Error finding lemma {lemma}: {e}")
                return None

    def get_site_lemmas(self, site_id: int) -> Dict[str, int]:
        """Словарь сайта: лемма -> число страниц"""
        with self._lock:
            try:
                self.cursor.execute('SELECT lemma, frequency FROM lemmas WHERE site_id = ?', (site_id,))
                return {row['lemma']: row['frequency'] for row in self.cursor.fetchall()}
            except sqlite3.Error as e:
                logger.error(f"Error getting lemmas of site {site_id}: {e}")
                return {}

    def upsert_lemma(self, site_id: int, lemma: str) -> Tuple[int, bool]:
        """
        Добавление леммы или увеличение её частоты на единицу.
        Чтение и обновление выполняются под одной блокировкой.
        Возвращает: (id леммы, создана ли новая лемма)
        """
        with self._lock:
            try:
                # Пытаемся получить существующую лемму
                self.cursor.execute('SELECT id FROM lemmas WHERE site_id = ? AND lemma = ?', (site_id, lemma))
                row = self.cursor.fetchone()

                if row:
                    lemma_id = row['id']
                    created = False
                    # Обновляем частоту
                    self.cursor.execute('UPDATE lemmas SET frequency = frequency + 1 WHERE id = ?', (lemma_id,))
                else:
                    # Добавляем новую лемму
                    self.cursor.execute('INSERT INTO lemmas (site_id, lemma, frequency) VALUES (?, ?, 1)',
                                        (site_id, lemma))
                    lemma_id = self.cursor.lastrowid
                    created = True

                self.conn.commit()
                return lemma_id, created

            except sqlite3.Error as e:
                logger.error(f"Error adding lemma {lemma}: {e}")
                self.conn.rollback()
                raise

    def add_posting(self, page_id: int, lemma_id: int, rank: float) -> bool:
        """
        Добавление записи в обратный индекс.
        Дубликат (страница, лемма) не сохраняется
        """
        with self._lock:
            try:
                self.cursor.execute('''
                    INSERT INTO postings (page_id, lemma_id, rank)
                    VALUES (?, ?, ?)
                ''', (page_id, lemma_id, rank))
                self.conn.commit()
                return True

            except sqlite3.IntegrityError as e:
                self.conn.rollback()
                logger.warning(f"Duplicate posting for page {page_id} and lemma {lemma_id} skipped: {e}")
                return False
            except sqlite3.Error as e:
                logger.error(f"Error adding posting for page {page_id}: {e}")
                self.conn.rollback()
                raise

    def get_page_postings(self, page_id: int) -> Dict[str, float]:
        """Леммы страницы с рангами"""
        with self._lock:
            try:
                self.cursor.execute('''
                    SELECT l.lemma, x.rank
                    FROM postings x
                    JOIN lemmas l ON x.lemma_id = l.id
                    WHERE x.page_id = ?
                ''', (page_id,))
                return {row['lemma']: row['rank'] for row in self.cursor.fetchall()}
            except sqlite3.Error as e:
                logger.error(f"Error getting postings of page {page_id}: {e}")
                return {}

    def get_postings_for_lemma(self, lemma: str, site_url: Optional[str] = None) -> Dict[int, float]:
        """Список словопозиций леммы: id страницы -> ранг"""
        with self._lock:
            try:
                query = '''
                    SELECT x.page_id, x.rank
                    FROM postings x
                    JOIN lemmas l ON x.lemma_id = l.id
                    JOIN sites s ON l.site_id = s.id
                    WHERE l.lemma = ?
                '''
                params: Tuple[Any, ...] = (lemma,)
                if site_url:
                    query += ' AND s.url = ?'
                    params += (site_url,)
                self.cursor.execute(query, params)
                return {row['page_id']: float(row['rank']) for row in self.cursor.fetchall()}
            except sqlite3.Error as e:
                logger.error(f"Error getting postings for lemma {lemma}: {e}")
                return {}

    def get_pages_with_sites(self, page_ids: List[int]) -> Dict[int, Tuple[Page, Site]]:
        """Страницы вместе с их сайтами для выдачи результатов"""
        if not page_ids:
            return {}

        with self._lock:
            try:
                placeholders = ', '.join('?' for _ in page_ids)
                self.cursor.execute(f'''
                    SELECT p.*, s.url AS site_url, s.name AS site_name, s.status AS site_status,
                           s.status_time AS site_status_time, s.last_error AS site_last_error
                    FROM pages p
                    JOIN sites s ON p.site_id = s.id
                    WHERE p.id IN ({placeholders})
                ''', tuple(page_ids))

                result = {}
                for row in self.cursor.fetchall():
                    site = Site(
                        id=row['site_id'],
                        url=row['site_url'],
                        name=row['site_name'],
                        status=SiteStatus(row['site_status']),
                        status_time=datetime.fromisoformat(row['site_status_time']),
                        last_error=row['site_last_error'],
                    )
                    result[row['id']] = (self._page_from_row(row), site)
                return result

            except sqlite3.Error as e:
                logger.error(f"Error getting pages {page_ids}: {e}")
                return {}

    # ---------- Статистика ----------

    def _count(self, query: str, params: Tuple[Any, ...] = ()) -> int:
        self.cursor.execute(query, params)
        row = self.cursor.fetchone()
        return row[0] if row else 0

    def get_statistics(self, indexing: bool = False) -> Dict[str, Any]:
        """
        Статистика по реальным данным базы:
        общие количества и детали по каждому сайту
        """
        with self._lock:
            try:
                total = {
                    'sites': self._count('SELECT COUNT(*) FROM sites'),
                    'pages': self._count('SELECT COUNT(*) FROM pages'),
                    'lemmas': self._count('SELECT COUNT(*) FROM lemmas'),
                    'indexing': indexing,
                }

                detailed = []
                for site in self.get_all_sites():
                    detailed.append({
                        'url': site.url,
                        'name': site.name,
                        'status': site.status.value,
                        'statusTime': int(site.status_time.timestamp() * 1000),
                        'error': site.last_error,
                        'pages': self._count('SELECT COUNT(*) FROM pages WHERE site_id = ?', (site.id,)),
                        'lemmas': self._count('SELECT COUNT(*) FROM lemmas WHERE site_id = ?', (site.id,)),
                    })

                return {'total': total, 'detailed': detailed}

            except sqlite3.Error as e:
                logger.error(f"Error collecting statistics: {e}")
                return {'total': {'sites': 0, 'pages': 0, 'lemmas': 0, 'indexing': indexing}, 'detailed': []}

    def close(self):
        """Закрытие соединения с базой данных"""
        with self._lock:
            if self.conn:
                self.conn.close()
                self.conn = None
                logger.info("Database connection closed")

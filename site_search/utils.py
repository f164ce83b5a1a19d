"""
Вспомогательные функции
"""

import re
import html
from typing import List, Optional, Tuple
from urllib.parse import urljoin, urlparse, urldefrag, quote
import logging

from bs4 import BeautifulSoup

from site_search.config import LOG_LEVEL, BINARY_EXTENSIONS

# Настройка логирования
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(threadName)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger('site_search')

EMAIL_PATTERN = re.compile(r'[\w.+-]+@[\w-]+\.[\w.-]+')
TIMESTAMP_PATTERN = re.compile(r'\d{10,}|\d{4}-\d{2}-\d{2}[T_ ]?\d{2}:\d{2}')
MARKUP_PATTERN = re.compile(r'<\s*/?\s*[a-zA-Z!][^>]*>')


def normalize_root(url: str) -> str:
    """Корневой URL сайта без завершающего слеша, схема и хост в нижнем регистре"""
    root = url.strip().rstrip('/')
    parsed = urlparse(root)
    if not parsed.scheme or not parsed.netloc:
        return root
    return parsed._replace(scheme=parsed.scheme.lower(), netloc=parsed.netloc.lower()).geturl()


def normalize_url(base_url: str, url: str) -> str:
    """
    Нормализация URL: абсолютный адрес без якоря,
    схема и хост в нижнем регистре
    """
    absolute_url, _ = urldefrag(urljoin(base_url, url.strip()))
    parsed = urlparse(absolute_url)
    if not parsed.scheme or not parsed.netloc:
        return absolute_url
    return parsed._replace(scheme=parsed.scheme.lower(), netloc=parsed.netloc.lower()).geturl()


def site_relative_path(url: str) -> Optional[str]:
    """Путь страницы относительно сайта: ключ для дедупликации"""
    try:
        parsed = urlparse(url)
    except ValueError as e:
        logger.warning(f"Cannot parse URL {url}: {e}")
        return None
    return parsed.path or '/'


def is_denied_url(url: str) -> bool:
    """
    Проверка URL по стоп-листу: не-http схемы, бинарные расширения,
    адреса почты, метки времени, пробелы и не-ASCII символы
    """
    if any(ch.isspace() for ch in url) or not url.isascii():
        return True

    parsed = urlparse(url)
    if parsed.scheme not in ('http', 'https'):
        return True

    last_segment = parsed.path.rsplit('/', 1)[-1]
    if '.' in last_segment:
        extension = last_segment.rsplit('.', 1)[-1].lower()
        if extension in BINARY_EXTENSIONS:
            return True

    if EMAIL_PATTERN.search(url) or TIMESTAMP_PATTERN.search(url):
        return True

    return False


def is_in_scope(url: str, root_url: str) -> bool:
    """URL принадлежит сайту (префикс корня) и проходит стоп-лист"""
    root = normalize_root(root_url)
    if not url.startswith(root):
        return False

    # Отсекаем хосты вида example.com.evil.org
    rest = url[len(root):]
    if rest and rest[0] not in '/?#':
        return False

    return not is_denied_url(url)


def strip_markup(text: str) -> str:
    """Удаление HTML-разметки, если текст на неё похож"""
    if not MARKUP_PATTERN.search(text):
        return text
    return BeautifulSoup(text, 'html.parser').get_text(separator=' ')


def parse_html(content, base_url: str) -> Tuple[str, str, List[str]]:
    """
    Разбор HTML-страницы
    Возвращает: (title, text, список абсолютных ссылок)
    """
    soup = BeautifulSoup(content, 'html.parser')

    # Извлечение заголовка
    title_tag = soup.find('title')
    title = title_tag.get_text(strip=True) if title_tag else ""

    # Извлечение ссылок до удаления служебных тегов
    links = []
    seen = set()
    for anchor in soup.find_all('a', href=True):
        href = anchor['href'].strip()
        if not href or href.startswith('#'):
            continue
        link = normalize_url(base_url, href)
        if link not in seen:
            seen.add(link)
            links.append(link)

    # Удаление скриптов и стилей
    for tag in soup(['script', 'style', 'noscript', 'template']):
        tag.decompose()

    text = soup.get_text(separator=' ', strip=True)
    text = re.sub(r'\s+', ' ', text).strip()

    return title, text, links


def highlight_terms(fragment: str, terms: List[str], link: str) -> str:
    """Экранирование фрагмента и подсветка терминов ссылкой на страницу"""
    unique_terms = sorted({term.lower() for term in terms if term}, key=len, reverse=True)
    if not unique_terms:
        return html.escape(fragment)

    pattern = re.compile('|'.join(re.escape(term) for term in unique_terms), re.IGNORECASE)

    parts = []
    position = 0
    for match in pattern.finditer(fragment):
        parts.append(html.escape(fragment[position:match.start()]))
        anchor = quote(match.group(0).lower())
        parts.append(f'<b><a href="{html.escape(link)}#match-{anchor}">{html.escape(match.group(0))}</a></b>')
        position = match.end()
    parts.append(html.escape(fragment[position:]))

    return ''.join(parts)


def generate_snippet(text: str, query_terms: List[str], link: str,
                     max_length: int = 200, lead: int = 50) -> str:
    """
    Генерация сниппета с подсветкой найденных терминов
    """
    if not text:
        return ""

    lower_text = text.lower()

    # Находим первую позицию любого термина запроса
    positions = [lower_text.find(term.lower()) for term in query_terms if term]
    positions = [pos for pos in positions if pos != -1]

    # Если термины не найдены, берем начало текста
    start = max(0, min(positions) - lead) if positions else 0
    end = min(len(text), start + max_length)

    snippet = highlight_terms(text[start:end], query_terms, link)

    # Добавляем многоточия если нужно
    if start > 0:
        snippet = "..." + snippet
    if end < len(text):
        snippet = snippet + "..."

    return snippet

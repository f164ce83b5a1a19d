"""
Конфигурация поискового движка
"""

import os
from typing import List, Dict, Any

# Конфигурация загрузчика страниц
PARSER_CONFIG = {
    'user_agent': 'Mozilla/5.0 (Windows; U; WindowsNT 5.1; en-US; rv1.8.1.6) Gecko/20070725 Firefox/2.0.0.6',
    'referrer': 'http://www.google.com',
    'connect_timeout': 5,
    'read_timeout': 10,
    'max_content_length': 5000000,  # Максимальный размер контента в байтах
    'delay_min': 0.006,  # Вежливая задержка перед запросом, секунды
    'delay_max': 0.071,
}

# Конфигурация индексации
INDEXING_CONFIG = {
    'max_workers': 8,  # Потоков обхода на один сайт
    'crawl_timeout': 3600,  # Общее время ожидания обхода всех сайтов
    'stop_timeout': 30,  # Ожидание потоков после остановки
    'max_pages': None,  # Ограничение числа страниц на сайт (None - без ограничения)
}

# Конфигурация лемматизации
LEMMA_CONFIG = {
    'min_word_length': 2,
    'excluded_tags': {'PREP', 'CONJ', 'PRCL', 'INTJ'},
    'nltk_auto_download': True,
}

# Конфигурация базы данных
DATABASE_CONFIG = {
    'db_name': os.getenv('SEARCH_DB_NAME', 'search_engine.db'),
}

# Конфигурация поиска
SEARCH_CONFIG = {
    'results_per_page': 20,
    'snippet_length': 200,
    'snippet_lead': 50,  # Сколько символов показывать до первого совпадения
}

# Уровень логирования
LOG_LEVEL = os.getenv('SEARCH_LOG_LEVEL', 'INFO')

# Список сайтов для индексации
SITES: List[Dict[str, Any]] = [
    {'name': 'PlayBack.Ru', 'url': 'https://www.playback.ru'},
    {'name': 'Лента.ру', 'url': 'https://www.lenta.ru'},
    {'name': 'Skillbox', 'url': 'https://www.skillbox.ru'},
]

# Расширения, которые не являются HTML-страницами
BINARY_EXTENSIONS = {
    'jpg', 'jpeg', 'png', 'gif', 'bmp', 'webp', 'svg', 'ico', 'tif', 'tiff',
    'pdf', 'doc', 'docx', 'xls', 'xlsx', 'ppt', 'pptx', 'odt',
    'zip', 'rar', 'gz', 'tgz', '7z', 'tar', 'exe', 'dmg', 'apk', 'iso',
    'mp3', 'mp4', 'avi', 'mov', 'mkv', 'wav', 'ogg', 'webm', 'flv',
    'woff', 'woff2', 'ttf', 'eot', 'css', 'js', 'json', 'xml', 'rss',
}

# Типы контента, которые сохраняются без извлечения текста
BINARY_CONTENT_TYPES = (
    'image/', 'audio/', 'video/', 'font/',
    'application/pdf', 'application/octet-stream', 'application/zip',
    'application/x-rar', 'application/msword', 'application/vnd.',
)

"""
Модуль записи страниц в обратный индекс
"""

from typing import Dict

from site_search.database import Database
from site_search.models import Page
from site_search.utils import logger


class IndexWriter:
    """Запись лемм страницы в словарь сайта и обратный индекс"""

    def __init__(self, db: Database):
        self.db = db

    def write_index(self, page: Page, lemma_frequencies: Dict[str, int]) -> Dict[str, int]:
        """
        Индексация страницы: частота леммы растет на 1 за страницу,
        ранг связи равен числу вхождений леммы на странице
        """
        new_lemmas = 0
        updated_lemmas = 0
        saved_postings = 0

        for lemma, count in lemma_frequencies.items():
            lemma_id, created = self.db.upsert_lemma(page.site_id, lemma)
            if created:
                new_lemmas += 1
            else:
                updated_lemmas += 1

            if self.db.add_posting(page.id, lemma_id, float(count)):
                saved_postings += 1

        logger.debug(f"Lemmas of page {page.path}: {lemma_frequencies}")
        logger.info(f"Indexed: {page.path} (ID: {page.id}, new lemmas: {new_lemmas}, "
                    f"updated lemmas: {updated_lemmas}, postings: {saved_postings})")

        return {'new': new_lemmas, 'updated': updated_lemmas, 'postings': saved_postings}

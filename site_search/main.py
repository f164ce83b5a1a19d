"""
Главный файл для запуска поискового движка
"""

import argparse
import json
from typing import List, Dict, Any, Optional

from site_search.config import DATABASE_CONFIG, SEARCH_CONFIG, SITES
from site_search.database import Database
from site_search.lemmatizer import build_default_extractor
from site_search.orchestrator import IndexingService
from site_search.search_engine import SearchEngine
from site_search.utils import logger


class SearchEngineApp:
    """Главный класс приложения поискового движка"""

    def __init__(self, db_name: str = DATABASE_CONFIG['db_name'],
                 sites: Optional[List[Dict[str, Any]]] = None):
        self.db = Database(db_name)
        self.extractor = build_default_extractor()
        self.indexing = IndexingService(self.db, self.extractor, sites if sites is not None else SITES)
        self.search_engine = SearchEngine(self.db, self.extractor)

        logger.info("Search Engine Application initialized")

    def crawl_websites(self) -> Dict[str, Any]:
        """Полная индексация всех сайтов с ожиданием завершения"""
        if not self.indexing.start():
            print("Indexing is already running")
            return self.db.get_statistics(self.indexing.is_indexing_in_progress())

        try:
            self.indexing.wait()
        except KeyboardInterrupt:
            print("\nStopping indexing...")
            self.indexing.stop()
            self.indexing.wait()

        return self.show_statistics()

    def index_page(self, url: str) -> bool:
        """Индексация одной страницы"""
        success = self.indexing.index_single_page(url)
        print(f"Page {url}: {'indexed' if success else 'indexing failed'}")
        return success

    def search(self, query: str, site: Optional[str] = None, offset: int = 0,
               limit: int = SEARCH_CONFIG['results_per_page'], as_json: bool = False):
        """Поиск и вывод результатов"""
        response = self.search_engine.search(query, site, offset, limit)

        if as_json:
            print(json.dumps(response.to_dict(), ensure_ascii=False, indent=2))
            return response

        if not response.success:
            print(f"Search failed: {response.error}")
            return response

        print(f"\n=== Search Results for: '{query}' ===")
        print(f"Found {response.total_count} results, showing {len(response.results)}")
        print("-" * 80)

        for i, result in enumerate(response.results, offset + 1):
            print(f"\n{i}. {result.title or result.uri}")
            print(f"   URL: {result.site}{result.uri}")
            print(f"   Site: {result.site_name}")
            print(f"   Relevance: {result.relevance:.1f}")
            print(f"   Snippet: {result.snippet}")

        if not response.results:
            print("\nNo results found. Try different search terms.")

        print("\n" + "=" * 80)
        return response

    def show_statistics(self) -> Dict[str, Any]:
        """Показать статистику базы данных"""
        stats = self.db.get_statistics(self.indexing.is_indexing_in_progress())
        total = stats['total']

        print("\n=== Database Statistics ===")
        print(f"Sites: {total['sites']}, pages: {total['pages']}, lemmas: {total['lemmas']}, "
              f"indexing: {total['indexing']}")
        for site in stats['detailed']:
            print(f"  {site['name']} ({site['url']}): {site['status']}, "
                  f"pages: {site['pages']}, lemmas: {site['lemmas']}")
            if site['error']:
                print(f"    Error: {site['error']}")

        return stats

    def cleanup(self):
        """Очистка ресурсов"""
        if self.indexing.is_indexing_in_progress():
            self.indexing.stop()
        self.db.close()
        logger.info("Application cleanup completed")


def main():
    """Основная функция"""
    parser = argparse.ArgumentParser(description='Site Search Engine')
    parser.add_argument('--db', default=DATABASE_CONFIG['db_name'], help='SQLite database file')
    parser.add_argument('--crawl', action='store_true', help='Index all configured sites (requires internet)')
    parser.add_argument('--index-page', metavar='URL', help='Re-index a configured site starting from URL')
    parser.add_argument('--search', type=str, help='Search query')
    parser.add_argument('--site', type=str, help='Restrict search to one site root URL')
    parser.add_argument('--offset', type=int, default=0, help='Number of results to skip')
    parser.add_argument('--limit', type=int, default=SEARCH_CONFIG['results_per_page'],
                        help='Number of results to show')
    parser.add_argument('--json', action='store_true', help='Print search response as JSON')
    parser.add_argument('--stats', action='store_true', help='Show database statistics')

    args = parser.parse_args()

    app = SearchEngineApp(args.db)

    try:
        if args.crawl:
            app.crawl_websites()

        elif args.index_page:
            app.index_page(args.index_page)

        elif args.search:
            app.search(args.search, args.site, args.offset, args.limit, args.json)

        elif args.stats:
            app.show_statistics()

        else:
            parser.print_help()

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
    except Exception as e:
        logger.error(f"Application error: {e}")
        import traceback
        traceback.print_exc()
    finally:
        app.cleanup()


if __name__ == "__main__":

    main()

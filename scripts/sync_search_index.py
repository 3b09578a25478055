# WORKFLOW: Command line full sync of the nomenclature search index.
# Used by: Operators and scheduled jobs after an import
# Functions:
# 1. dry_run() - Print the documents a sync would upload as JSON
# 2. main() - Parse arguments, rebuild the collection and validate it
#
# Sync flow: Database -> HierarchyIndex -> Category chains -> Documents -> Qdrant collection
# Exit code is 1 if any batch fails or the collection count does not match.

"""
Synchronize the nomenclature search index.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from core.config import settings  # noqa: E402
from db.session import check_db_connection, dispose_engine, get_db  # noqa: E402
from etl.build_search_index import (  # noqa: E402
    build_search_index, collect_documents, get_index_statistics, validate_search_index
)
from search.index import SearchIndex  # noqa: E402

logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)


def dry_run(db, limit: int = None) -> int:
    documents = collect_documents(db)
    if limit is not None:
        documents = documents[:limit]

    print(json.dumps([document.model_dump(mode='json') for document in documents], ensure_ascii=False, indent=2))
    logger.info(f"Dry run: {len(documents)} documents prepared, nothing uploaded")
    return len(documents)


def main(argv=None):
    """
    Main sync function.
    """
    parser = argparse.ArgumentParser(description='Synchronize the nomenclature search index')
    parser.add_argument('--collection', default=settings.search_collection, help='Target collection name')
    parser.add_argument('--batch-size', type=int, default=settings.import_batch_size,
                        help='Documents per import batch')
    parser.add_argument('--dry-run', action='store_true', help='Print documents instead of uploading')
    parser.add_argument('--limit', type=int, help='Only process the first N documents')

    args = parser.parse_args(argv)

    try:
        if not check_db_connection():
            logger.error("Database is not reachable")
            return 1

        with next(get_db()) as db:
            if args.dry_run:
                dry_run(db, args.limit)
                return 0

            index = SearchIndex(collection_name=args.collection)
            result = build_search_index(db, index, batch_size=args.batch_size, limit=args.limit)

        if result['failed']:
            logger.error(f"{result['failed']} documents failed to import")
            return 1

        if not validate_search_index(index, result['succeeded']):
            return 1

        logger.info(f"Sync completed: {get_index_statistics(index)}")
        return 0

    except Exception as e:
        logger.error(f"Search index sync failed: {e}")
        return 1
    finally:
        dispose_engine()


if __name__ == "__main__":
    sys.exit(main())

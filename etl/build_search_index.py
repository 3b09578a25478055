# WORKFLOW: Full synchronization of the nomenclature search index from the database.
# Used by: scripts.sync_search_index, tests
# Functions:
# 1. load_hierarchy_index() - Paginated scan of nomenclature records into a HierarchyIndex
# 2. build_search_index() - Load, resolve, assemble and import all documents
# 3. validate_search_index() - Check the collection holds the expected documents
# 4. get_index_statistics() - Collection statistics for logging
#
# Sync flow: Database pages -> HierarchyIndex (complete) -> CategoryChainResolver -> Documents
#            -> Collection rebuild -> Batched import -> Validation
# Resolution only starts once every page has been loaded.

"""
Search index synchronization for nomenclature documents.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from core.config import settings
from db.repository import fetch_section_names, iter_nomenclature_records
from search.index import SearchIndex
from search.schemas import NomenclatureDocument
from services.category_chain import HierarchyIndex
from services.document_builder import prepare_documents

logger = logging.getLogger(__name__)


def load_hierarchy_index(db: Session, chunk_size: int = None) -> HierarchyIndex:
    """
    Load every nomenclature record into a HierarchyIndex.

    Args:
        db: Database session
        chunk_size: Rows per page (defaults to settings.db_chunk_size)
    """
    try:
        index = HierarchyIndex.from_records(
            iter_nomenclature_records(db, chunk_size or settings.db_chunk_size)
        )
        logger.info(f"Loaded {index.record_count} records into {len(index)} hierarchy paths")
        return index

    except Exception as e:
        logger.error(f"Failed to load nomenclature records: {e}")
        raise


def collect_documents(db: Session, chunk_size: int = None) -> List[NomenclatureDocument]:
    """Load the index and return every document of a full sync."""
    index = load_hierarchy_index(db, chunk_size)
    return prepare_documents(index, fetch_section_names(db))


def build_search_index(db: Session, index: SearchIndex, batch_size: int = None,
                       limit: Optional[int] = None) -> Dict[str, int]:
    """
    Rebuild the search collection from the database.

    Args:
        db: Database session
        index: Target search collection
        batch_size: Documents per import batch
        limit: Upload only the first N documents

    Returns:
        Dictionary with prepared, succeeded and failed counts
    """
    try:
        logger.info(f"Building search index {index.collection_name}")

        documents = collect_documents(db)
        if limit is not None:
            documents = documents[:limit]

        index.recreate_collection()

        if not documents:
            logger.warning("No nomenclature documents to index")
            return {'prepared': 0, 'succeeded': 0, 'failed': 0}

        succeeded, failed = index.import_documents(documents, batch_size or settings.import_batch_size)
        logger.info(f"Search index {index.collection_name} built: {succeeded} documents imported, {failed} failed")
        return {'prepared': len(documents), 'succeeded': succeeded, 'failed': failed}

    except Exception as e:
        logger.error(f"Failed to build search index: {e}")
        raise


def validate_search_index(index: SearchIndex, expected: int) -> bool:
    """
    Validate search index integrity.

    Returns:
        True if the collection holds exactly the expected number of documents
    """
    try:
        count = index.count()
        logger.info(f"Collection {index.collection_name} has {count} points, expected {expected}")

        if count != expected:
            logger.error(f"Search index document count mismatch: {count} != {expected}")
            return False

        return True

    except Exception as e:
        logger.error(f"Search index validation failed: {e}")
        return False


def get_index_statistics(index: SearchIndex) -> Dict[str, Any]:
    try:
        return index.get_collection_info()
    except Exception as e:
        logger.error(f"Failed to get index statistics: {e}")
        return {}


def main() -> int:
    """
    Main function for a full search index sync.
    """
    try:
        from db.session import get_db

        with next(get_db()) as db:
            index = SearchIndex()
            result = build_search_index(db, index)

            if result['failed'] or not validate_search_index(index, result['succeeded']):
                logger.error("Search index sync finished with errors")
                return 1

            logger.info(f"Index statistics: {get_index_statistics(index)}")

        return 0

    except Exception as e:
        logger.error(f"Search index sync failed: {e}")
        return 1


if __name__ == "__main__":
    import sys
    sys.exit(main())

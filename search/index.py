# WORKFLOW: Qdrant collection holding the searchable nomenclature documents.
# Used by: etl.build_search_index, scripts.sync_search_index
# Functions:
# 1. recreate_collection() - Drop and create the collection with facet payload indexes
# 2. import_documents() - Embed and upsert documents in batches
# 3. search() - Similarity search with optional facet filters
# 4. count() / get_collection_info() - Monitor collection status
# 5. delete_collection() - Remove the collection
#
# Import flow: NomenclatureDocument -> search_text() embedding -> PointStruct(uuid5(id), payload=document) -> upsert
# A full sync always rebuilds the collection; documents are never patched in place.

import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from qdrant_client import QdrantClient
from qdrant_client.models import (
    Distance, FieldCondition, Filter, MatchAny, MatchValue, PayloadSchemaType, PointStruct, VectorParams
)

from core.config import settings
from search.embeddings import get_embedding_model
from search.schemas import FACET_FIELDS, NomenclatureDocument

logger = logging.getLogger(__name__)

# Namespace for deterministic point ids
POINT_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "taric-nomenclature")


def create_client(qdrant_url: str = None) -> QdrantClient:
    """Create a Qdrant client; ':memory:' runs the in-process engine."""
    qdrant_url = qdrant_url or settings.qdrant_url
    if qdrant_url in {":memory:", "memory", "memory://"}:
        return QdrantClient(":memory:")

    parsed = qdrant_url.replace("http://", "").replace("https://", "")
    if ":" in parsed:
        host, port = parsed.split(":")
        port = int(port)
    else:
        host = parsed
        port = 6333
    return QdrantClient(host, port=port)


def point_id(document_id: str) -> str:
    return str(uuid.uuid5(POINT_NAMESPACE, document_id))


class SearchIndex:
    """Nomenclature collection in Qdrant."""

    def __init__(self, collection_name: str = None, client: QdrantClient = None, embedding_model=None):
        self.collection_name = collection_name or settings.search_collection
        self.client = client or create_client()
        self.embedding_model = embedding_model

    def _get_embedding_model(self):
        if self.embedding_model is None:
            self.embedding_model = get_embedding_model()
        return self.embedding_model

    def recreate_collection(self) -> None:
        """Drop the collection if it exists and create it empty."""
        try:
            if self.client.collection_exists(self.collection_name):
                self.client.delete_collection(self.collection_name)
                logger.info(f"Deleted existing collection: {self.collection_name}")

            self.client.create_collection(
                collection_name=self.collection_name,
                vectors_config=VectorParams(
                    size=settings.vector_dimension,
                    distance=Distance.COSINE,
                ),
            )
            for field in FACET_FIELDS:
                self.client.create_payload_index(
                    collection_name=self.collection_name,
                    field_name=field,
                    field_schema=PayloadSchemaType.KEYWORD,
                )
            logger.info(f"Collection {self.collection_name} created with facets {list(FACET_FIELDS)}")
        except Exception as e:
            logger.error(f"Failed to recreate collection {self.collection_name}: {e}")
            raise

    def _upsert_batch(self, documents: List[NomenclatureDocument]) -> None:
        model = self._get_embedding_model()
        embeddings = model.encode_batch([document.search_text() for document in documents])

        points = [
            PointStruct(id=point_id(document.id), vector=embedding.tolist(), payload=document.model_dump())
            for document, embedding in zip(documents, embeddings)
        ]
        self.client.upsert(collection_name=self.collection_name, points=points)

    def import_documents(self, documents: List[NomenclatureDocument], batch_size: int = None) -> Tuple[int, int]:
        """
        Embed and upload documents in batches.

        A failing batch is logged and counted; the remaining batches are still imported.

        Returns:
            Tuple of (succeeded, failed) document counts
        """
        batch_size = batch_size or settings.import_batch_size
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")

        succeeded = 0
        failed = 0
        total_batches = (len(documents) + batch_size - 1) // batch_size

        for batch_number, start in enumerate(range(0, len(documents), batch_size), start=1):
            batch = documents[start:start + batch_size]
            try:
                self._upsert_batch(batch)
                succeeded += len(batch)
                logger.info(f"Imported batch {batch_number}/{total_batches} ({len(batch)} documents)")
            except Exception as e:
                failed += len(batch)
                logger.error(f"Failed to import batch {batch_number}/{total_batches}: {e}")

        logger.info(f"Import into {self.collection_name} finished: {succeeded} succeeded, {failed} failed")
        return succeeded, failed

    def search(self, query: str, top_k: int = None, filter_conditions: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Search for similar documents.

        Args:
            query: Search query
            top_k: Number of results to return
            filter_conditions: Payload field -> value, or list of accepted values

        Returns:
            List of {'id', 'score', 'document'} dicts, best first
        """
        try:
            top_k = top_k or settings.top_k_search
            query_embedding = self._get_embedding_model().encode(query)[0]

            response = self.client.query_points(
                collection_name=self.collection_name,
                query=query_embedding.tolist(),
                limit=top_k,
                with_payload=True,
                query_filter=self._build_filter(filter_conditions) if filter_conditions else None,
            )

            results = [
                {'id': point.id, 'score': point.score, 'document': point.payload}
                for point in response.points
            ]
            logger.info(f"Retrieved {len(results)} results for query: {query[:50]}")
            return results

        except Exception as e:
            logger.error(f"Search failed: {e}")
            raise

    def _build_filter(self, conditions: Dict[str, Any]) -> Filter:
        must = []
        for field, value in conditions.items():
            if isinstance(value, (list, tuple, set)):
                must.append(FieldCondition(key=field, match=MatchAny(any=list(value))))
            else:
                must.append(FieldCondition(key=field, match=MatchValue(value=value)))
        return Filter(must=must)

    def count(self) -> int:
        return self.client.count(collection_name=self.collection_name, exact=True).count

    def get_collection_info(self) -> Dict[str, Any]:
        try:
            info = self.client.get_collection(self.collection_name)
            return {
                'name': self.collection_name,
                'points_count': info.points_count,
                'status': str(info.status),
                'payload_schema': sorted(info.payload_schema.keys()),
            }
        except Exception as e:
            logger.error(f"Failed to get collection info: {e}")
            raise

    def delete_collection(self) -> None:
        try:
            self.client.delete_collection(self.collection_name)
            logger.info(f"Collection {self.collection_name} deleted")
        except Exception as e:
            logger.error(f"Failed to delete collection: {e}")
            raise

# WORKFLOW: Sentence-transformers embedding model for the nomenclature search index.
# Used by: search.index (document vectors and query vectors)
# Functions:
# 1. encode() - Embed one text or a list of texts
# 2. encode_batch() - Embed document texts in model-sized batches
#
# Embedding flow: NomenclatureDocument.search_text() -> model -> normalized vector -> Qdrant point
# The model's output size must equal settings.vector_dimension, the size the collection is created with.

from sentence_transformers import SentenceTransformer
from typing import List, Union
import numpy as np
import logging
from core.config import settings

logger = logging.getLogger(__name__)


class EmbeddingModel:
    """Embeds goods code texts and search queries with one sentence-transformers model."""

    def __init__(self, model_name: str = None, dimension: int = None):
        self.model_name = model_name or settings.embedding_model
        self.dimension = dimension or settings.vector_dimension
        self.model = self._load_model()

    def _load_model(self) -> SentenceTransformer:
        try:
            logger.info(f"Loading embedding model: {self.model_name}")
            model = SentenceTransformer(self.model_name, cache_folder=settings.model_cache_dir)
        except Exception as e:
            logger.error(f"Failed to load embedding model {self.model_name}: {e}")
            raise

        model_dimension = model.get_sentence_embedding_dimension()
        if model_dimension != self.dimension:
            raise ValueError(
                f"Embedding model {self.model_name} produces {model_dimension}-d vectors, "
                f"collection expects {self.dimension}"
            )
        logger.info(f"Embedding model loaded ({model_dimension}-d)")
        return model

    def encode(self, texts: Union[str, List[str]], normalize: bool = True) -> np.ndarray:
        """Return a 2-D array with one row per text."""
        if isinstance(texts, str):
            texts = [texts]
        return self.encode_batch(texts, normalize=normalize)

    def encode_batch(self, texts: List[str], batch_size: int = 64, normalize: bool = True) -> np.ndarray:
        if not texts:
            return np.empty((0, self.dimension))
        try:
            return self.model.encode(
                texts,
                batch_size=batch_size,
                normalize_embeddings=normalize,
                convert_to_numpy=True,
                show_progress_bar=False,
            )
        except Exception as e:
            logger.error(f"Embedding {len(texts)} texts failed: {e}")
            raise


# Global embedding model instance (lazy-loaded)
_embedding_model = None


def get_embedding_model() -> EmbeddingModel:
    global _embedding_model
    if _embedding_model is None:
        _embedding_model = EmbeddingModel()
    return _embedding_model

"""Vector index for cosine similarity search over stored menus.

Exact search; no approximate nearest neighbour structure is used. The index is
rebuilt from stored rows for each query, which is fine at menu-library scale.
"""

import numpy as np

from swim_menu.rag.types import RetrievalHit


class VectorIndex:
    """In-memory vector index with exact cosine similarity search."""

    def __init__(self, entries: list[tuple[str, dict, list[float]]]):
        """Initialize vector index.

        Args:
            entries: (menu_id, metadata, vector) triples; vectors must share one dimension
        """
        self.ids: list[str] = [menu_id for menu_id, _, _ in entries]
        self.metadata: list[dict] = [metadata for _, metadata, _ in entries]

        if not entries:
            self.normalized_vectors = np.zeros((0, 0), dtype=np.float32)
            return

        vectors = np.array([vector for _, _, vector in entries], dtype=np.float32)
        norms = np.linalg.norm(vectors, axis=1, keepdims=True)
        norms = np.where(norms == 0, 1, norms)
        self.normalized_vectors = vectors / norms

    def search(self, query_vector: list[float], k: int) -> list[RetrievalHit]:
        """Search for the top-K menus by cosine similarity.

        Args:
            query_vector: Query embedding vector
            k: Number of results to return

        Returns:
            Hits sorted by similarity descending
        """
        if not self.ids or k <= 0:
            return []

        query_array = np.array(query_vector, dtype=np.float32)
        if query_array.shape[0] != self.normalized_vectors.shape[1]:
            raise ValueError(
                f"Query dimension {query_array.shape[0]} does not match index dimension {self.normalized_vectors.shape[1]}"
            )

        query_norm = np.linalg.norm(query_array)
        if query_norm == 0:
            return []

        similarities = np.dot(self.normalized_vectors, query_array / query_norm)
        top_k_indices = np.argsort(-similarities, kind="stable")[:k]

        return [
            RetrievalHit(id=self.ids[idx], metadata=self.metadata[idx], similarity=float(similarities[idx]))
            for idx in top_k_indices
        ]

    def size(self) -> int:
        return len(self.ids)

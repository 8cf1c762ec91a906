"""
Similarity Scoring

Cosine similarity between embedding vectors. Pure functions, safe to call
from any number of concurrent tasks.
"""

from typing import List, Sequence

import numpy as np

from ..common.errors import DimensionMismatch


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Compute cosine similarity between two vectors.

    A zero-norm input scores exactly 0.0. The result is clamped to [-1, 1]
    so floating-point overshoot never leaks out.

    Raises:
        DimensionMismatch: if the vectors differ in length
    """
    v1 = np.asarray(a, dtype=float)
    v2 = np.asarray(b, dtype=float)

    if v1.shape != v2.shape:
        raise DimensionMismatch(v1.size, v2.size)

    norm1 = float(np.linalg.norm(v1))
    norm2 = float(np.linalg.norm(v2))
    if norm1 == 0.0 or norm2 == 0.0:
        return 0.0

    similarity = float(np.dot(v1, v2)) / (norm1 * norm2)
    return max(-1.0, min(1.0, similarity))


def batch_cosine_similarity(
    query_vec: Sequence[float],
    vectors: Sequence[Sequence[float]],
) -> List[float]:
    """
    Cosine similarity between one query and each row of a matrix.

    Row-for-row identical to cosine_similarity(query_vec, row).
    """
    if len(vectors) == 0:
        return []

    query = np.asarray(query_vec, dtype=float)
    for row in vectors:
        if len(row) != query.size:
            raise DimensionMismatch(query.size, len(row))
    matrix = np.asarray(vectors, dtype=float)

    query_norm = float(np.linalg.norm(query))
    if query_norm == 0.0:
        return [0.0] * matrix.shape[0]

    row_norms = np.linalg.norm(matrix, axis=1)
    dots = matrix @ query
    denom = row_norms * query_norm
    similarities = np.divide(dots, denom, out=np.zeros_like(dots), where=denom != 0)
    return np.clip(similarities, -1.0, 1.0).tolist()

"""Vector similarity primitives shared by the stores and the pipeline."""

import math
from collections.abc import Sequence

_EPSILON = 1e-12


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two dense vectors, in [-1, 1].

    Only the first ``min(len(a), len(b))`` components are compared, so
    vectors of different length are truncated rather than rejected. Cached
    vectors written by earlier versions rely on this. The epsilon keeps
    all-zero vectors at a score of 0.0 instead of dividing by zero.
    """
    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b) + _EPSILON)

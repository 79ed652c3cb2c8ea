"""Vector math helpers."""

import math


def vector_norm(vec: list[float] | tuple[float, ...]) -> float:
    """Euclidean length of a vector."""
    return math.sqrt(sum(v * v for v in vec))

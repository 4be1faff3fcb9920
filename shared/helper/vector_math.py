"""Vector helpers for embedding similarity."""

import math
from typing import Sequence


def _check_pair(a: Sequence[float], b: Sequence[float]) -> None:
    if not a or not b:
        raise ValueError("Vectors must not be empty.")
    if len(a) != len(b):
        raise ValueError(f"Vector dimensions do not match: {len(a)} != {len(b)}.")


def dot_product(a: Sequence[float], b: Sequence[float]) -> float:
    """Return the dot product of two vectors of equal length.

    Raises:
        ValueError: If a vector is empty or the lengths differ.
    """
    _check_pair(a, b)
    return math.fsum(x * y for x, y in zip(a, b))


def magnitude(v: Sequence[float]) -> float:
    if not v:
        raise ValueError("Vector must not be empty.")
    return math.sqrt(math.fsum(x * x for x in v))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return the cosine similarity of two vectors, in [-1, 1].

    A zero-magnitude vector has no direction, its similarity to anything is 0.0.

    Raises:
        ValueError: If a vector is empty or the lengths differ.
    """
    _check_pair(a, b)
    norm = magnitude(a) * magnitude(b)
    if norm == 0.0:
        return 0.0
    # clamp rounding noise
    return max(-1.0, min(1.0, dot_product(a, b) / norm))


def normalize(v: Sequence[float]) -> list[float]:
    """Scale a vector to unit length. A zero vector is returned unchanged."""
    length = magnitude(v)
    if length == 0.0:
        return list(v)
    return [x / length for x in v]

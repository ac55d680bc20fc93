from __future__ import annotations

from typing import Sequence

import numpy as np

from cvmatch.core.errors import DimensionMismatch


def cosine_similarity(left: Sequence[float], right: Sequence[float]) -> float:
    """Cosine of the angle between two vectors, in [-1, 1].

    Raises DimensionMismatch when the vectors differ in length. A zero vector
    carries no direction, so its similarity to anything is 0.0.
    """
    if len(left) != len(right):
        raise DimensionMismatch(len(left), len(right))
    if not len(left):
        return 0.0

    a = np.asarray(left, dtype=float)
    b = np.asarray(right, dtype=float)
    left_norm = float(np.linalg.norm(a))
    right_norm = float(np.linalg.norm(b))
    if left_norm <= 0 or right_norm <= 0:
        return 0.0
    value = float(np.dot(a, b) / (left_norm * right_norm))
    return max(-1.0, min(1.0, value))


def zero_vector(dimension: int) -> list[float]:
    return [0.0] * dimension


def clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, float(value)))

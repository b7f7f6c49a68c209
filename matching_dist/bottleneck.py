"""Bottleneck distance between finite persistence diagrams.

Diagrams are ``(n, 2)`` arrays of ``(birth, death)`` pairs; a death of
``inf`` marks an essential point.  Essential points can only be matched to
essential points, finite points may additionally be matched to the diagonal.
The finite part is solved by a binary search over candidate matching costs,
testing each threshold for a perfect matching of the diagonal-augmented
bipartite graph.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Tuple, Union

import numpy as np
from scipy.sparse import csr_matrix
from scipy.sparse.csgraph import maximum_bipartite_matching

logger = logging.getLogger(__name__)

DiagramLike = Union[np.ndarray, Iterable[Tuple[float, float]]]


def as_diagram(diagram: DiagramLike) -> np.ndarray:
    """Return ``diagram`` as a float ``(n, 2)`` array without zero-persistence points."""

    arr = np.asarray(list(diagram) if not isinstance(diagram, np.ndarray) else diagram, dtype=float)
    arr = arr.reshape(-1, 2)
    if np.any(np.isnan(arr)):
        raise ValueError("persistence diagram contains NaN coordinates")
    return arr[arr[:, 1] > arr[:, 0]]


def _split_essential(dgm: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    essential = np.isinf(dgm[:, 1])
    return dgm[~essential], np.sort(dgm[essential, 0])


def _essential_distance(births_a: np.ndarray, births_b: np.ndarray) -> float:
    if births_a.size != births_b.size:
        return math.inf
    if births_a.size == 0:
        return 0.0
    return float(np.max(np.abs(births_a - births_b)))


def _cost_matrix(dgm_a: np.ndarray, dgm_b: np.ndarray) -> np.ndarray:
    n, m = len(dgm_a), len(dgm_b)
    size = n + m
    cost = np.full((size, size), np.inf)

    if n and m:
        cost[:n, :m] = np.max(np.abs(dgm_a[:, None, :] - dgm_b[None, :, :]), axis=2)
    # every point may only go to its own diagonal projection
    if n:
        cost[np.arange(n), m + np.arange(n)] = 0.5 * (dgm_a[:, 1] - dgm_a[:, 0])
    if m:
        cost[n + np.arange(m), np.arange(m)] = 0.5 * (dgm_b[:, 1] - dgm_b[:, 0])
    cost[n:, m:] = 0.0
    return cost


def _has_perfect_matching(cost: np.ndarray, threshold: float) -> bool:
    graph = csr_matrix((cost <= threshold).astype(np.int8))
    matching = maximum_bipartite_matching(graph, perm_type="column")
    return bool(np.all(matching >= 0))


def _snap_to_grid(values: np.ndarray, epsilon: float) -> np.ndarray:
    snapped = values.copy()
    positive = values > 0
    exponents = np.ceil(np.log(values[positive]) / math.log1p(epsilon))
    snapped[positive] = np.maximum(np.power(1.0 + epsilon, exponents), values[positive])
    return snapped


def _finite_distance(dgm_a: np.ndarray, dgm_b: np.ndarray, epsilon: float) -> float:
    if len(dgm_a) == 0 and len(dgm_b) == 0:
        return 0.0

    cost = _cost_matrix(dgm_a, dgm_b)
    candidates = cost[np.isfinite(cost)]
    if epsilon > 0.0:
        candidates = _snap_to_grid(candidates, epsilon)
    candidates = np.unique(candidates)

    lo, hi = 0, len(candidates) - 1
    while lo < hi:
        mid = (lo + hi) // 2
        if _has_perfect_matching(cost, candidates[mid]):
            hi = mid
        else:
            lo = mid + 1
    return float(candidates[lo])


def bottleneck_distance(dgm_a: DiagramLike, dgm_b: DiagramLike, epsilon: float = 0.0) -> float:
    """Bottleneck distance between two diagrams.

    ``epsilon = 0`` requests the exact value; for ``epsilon > 0`` the
    returned value ``r`` satisfies ``d <= r <= (1 + epsilon) * d``.
    """

    if epsilon < 0:
        raise ValueError(f"epsilon must be non-negative, got {epsilon}")

    finite_a, essential_a = _split_essential(as_diagram(dgm_a))
    finite_b, essential_b = _split_essential(as_diagram(dgm_b))

    essential = _essential_distance(essential_a, essential_b)
    if math.isinf(essential):
        logger.debug(
            "Essential parts differ in size: %d vs %d", essential_a.size, essential_b.size
        )
        return math.inf

    finite = _finite_distance(finite_a, finite_b, epsilon)
    logger.debug(
        "bottleneck_distance: finite sizes=(%d, %d) essential sizes=(%d, %d) finite=%.6g essential=%.6g",
        len(finite_a),
        len(finite_b),
        essential_a.size,
        essential_b.size,
        finite,
        essential,
    )
    return max(finite, essential)


__all__ = ["DiagramLike", "as_diagram", "bottleneck_distance"]

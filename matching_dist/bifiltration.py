"""Simplicial bifiltrations and the persistence of their slices."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

import numpy as np

from .dual_point import DualPoint
from .module import _PositionExtents
from .types import Point

logger = logging.getLogger(__name__)


@dataclass
class Simplex:
    dim: int
    position: Point
    boundary: Tuple[int, ...] = ()

    def __post_init__(self) -> None:
        self.position = (float(self.position[0]), float(self.position[1]))
        self.boundary = tuple(int(i) for i in self.boundary)
        if self.dim == 0 and self.boundary:
            raise ValueError("vertices cannot have a boundary")
        if self.dim > 0 and len(self.boundary) != self.dim + 1:
            raise ValueError(
                f"a {self.dim}-simplex needs {self.dim + 1} boundary faces, got {len(self.boundary)}"
            )


@dataclass
class Bifiltration(_PositionExtents):
    """Simplicial complex with a bigrade of appearance for every simplex.

    Faces are referenced by index in ``simplices`` and must appear no later
    than their cofaces in both parameters.
    """

    simplices: List[Simplex] = field(default_factory=list)

    def __post_init__(self) -> None:
        for idx, simplex in enumerate(self.simplices):
            for face_idx in simplex.boundary:
                if not 0 <= face_idx < len(self.simplices):
                    raise ValueError(f"simplex {idx} refers to missing face {face_idx}")
                face = self.simplices[face_idx]
                if face.dim != simplex.dim - 1:
                    raise ValueError(f"simplex {idx} has face {face_idx} of dimension {face.dim}")
                if face.position[0] > simplex.position[0] or face.position[1] > simplex.position[1]:
                    raise ValueError(f"face {face_idx} appears after simplex {idx}")

    @classmethod
    def from_vertex_lists(cls, entries: Sequence[Tuple[Sequence[int], Point]]) -> "Bifiltration":
        """Build from ``(vertices, position)`` pairs, faces listed before cofaces."""

        index: Dict[Tuple[int, ...], int] = {}
        simplices: List[Simplex] = []
        for vertices, position in entries:
            key = tuple(sorted(vertices))
            boundary = []
            if len(key) > 1:
                for skip in range(len(key)):
                    face = key[:skip] + key[skip + 1:]
                    if face not in index:
                        raise ValueError(f"face {face} of simplex {key} is not listed before it")
                    boundary.append(index[face])
            index[key] = len(simplices)
            simplices.append(Simplex(len(key) - 1, position, tuple(boundary)))
        return cls(simplices)

    def positions(self) -> List[Point]:
        return [simplex.position for simplex in self.simplices]

    def translate(self, offset: float) -> None:
        for simplex in self.simplices:
            simplex.position = (simplex.position[0] + offset, simplex.position[1] + offset)

    def weighted_slice_diagram(self, line: DualPoint, dim: int = 0) -> np.ndarray:
        values = [line.weighted_push(simplex.position) for simplex in self.simplices]
        order = sorted(
            range(len(self.simplices)),
            key=lambda idx: (values[idx], self.simplices[idx].dim, idx),
        )
        rank = {simplex_idx: pos for pos, simplex_idx in enumerate(order)}

        # columns as Python ints used as bit sets over filtration positions
        reduced: Dict[int, int] = {}
        pivot_owner: Dict[int, int] = {}
        for pos, simplex_idx in enumerate(order):
            column = 0
            for face_idx in self.simplices[simplex_idx].boundary:
                column ^= 1 << rank[face_idx]
            while column:
                pivot = column.bit_length() - 1
                owner = pivot_owner.get(pivot)
                if owner is None:
                    pivot_owner[pivot] = pos
                    break
                column ^= reduced[owner]
            reduced[pos] = column

        # birth position -> death position
        paired = pivot_owner
        rows = []
        death_positions = set(paired.values())
        for pos, simplex_idx in enumerate(order):
            if self.simplices[simplex_idx].dim != dim or pos in death_positions:
                continue
            birth = values[simplex_idx]
            if pos in paired:
                death = values[order[paired[pos]]]
            else:
                death = np.inf
            if death > birth:
                rows.append((birth, death))

        logger.debug(
            "weighted_slice_diagram: line=%s simplices=%d dim=%d points=%d",
            line,
            len(self.simplices),
            dim,
            len(rows),
        )
        return np.asarray(rows, dtype=float).reshape(-1, 2)


__all__ = ["Simplex", "Bifiltration"]

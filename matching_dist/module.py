"""Two-parameter persistence modules consumed by the distance calculator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Protocol, Sequence

import numpy as np

from .dual_point import DualPoint
from .types import Point


class Module(Protocol):
    """Interface the dual-space search needs from a persistence module."""

    def positions(self) -> Sequence[Point]:
        ...

    def weighted_slice_diagram(self, line: DualPoint, dim: int = 0) -> np.ndarray:
        ...

    def max_x(self) -> float:
        ...

    def max_y(self) -> float:
        ...

    def min_x(self) -> float:
        ...

    def min_y(self) -> float:
        ...

    def minimal_coordinate(self) -> float:
        ...

    def translate(self, offset: float) -> None:
        ...


class _PositionExtents:
    """Bounding-box helpers for modules that define ``positions()``."""

    def _coords(self) -> np.ndarray:
        positions = self.positions()
        if not positions:
            return np.zeros((0, 2))
        return np.asarray(positions, dtype=float)

    def max_x(self) -> float:
        coords = self._coords()
        return float(coords[:, 0].max()) if coords.size else 0.0

    def max_y(self) -> float:
        coords = self._coords()
        return float(coords[:, 1].max()) if coords.size else 0.0

    def min_x(self) -> float:
        coords = self._coords()
        return float(coords[:, 0].min()) if coords.size else 0.0

    def min_y(self) -> float:
        coords = self._coords()
        return float(coords[:, 1].min()) if coords.size else 0.0

    def minimal_coordinate(self) -> float:
        return min(self.min_x(), self.min_y())


@dataclass
class Summand:
    """Interval summand supported on ``up(birth)`` minus ``up(death)``.

    ``death=None`` makes the summand essential (never killed).
    """

    birth: Point
    death: Optional[Point] = None
    dim: int = 0

    def __post_init__(self) -> None:
        self.birth = (float(self.birth[0]), float(self.birth[1]))
        if self.death is not None:
            self.death = (float(self.death[0]), float(self.death[1]))
            if self.death[0] < self.birth[0] or self.death[1] < self.birth[1]:
                raise ValueError(f"death {self.death} does not dominate birth {self.birth}")


@dataclass
class IntervalModule(_PositionExtents):
    """Direct sum of interval summands.

    On a line the summand born at ``b`` and killed at ``d`` becomes the bar
    from the weighted push of ``b`` to the weighted push of ``d``.
    """

    summands: List[Summand] = field(default_factory=list)

    @classmethod
    def from_pairs(
        cls, pairs: Iterable[Sequence[Optional[Point]]], dim: int = 0
    ) -> "IntervalModule":
        summands = []
        for pair in pairs:
            birth = pair[0]
            death = pair[1] if len(pair) > 1 else None
            summands.append(Summand(birth, death, dim))
        return cls(summands)

    def positions(self) -> List[Point]:
        result: List[Point] = []
        for summand in self.summands:
            result.append(summand.birth)
            if summand.death is not None:
                result.append(summand.death)
        return result

    def weighted_slice_diagram(self, line: DualPoint, dim: int = 0) -> np.ndarray:
        rows = []
        for summand in self.summands:
            if summand.dim != dim:
                continue
            birth = line.weighted_push(summand.birth)
            death = np.inf if summand.death is None else line.weighted_push(summand.death)
            if death > birth:
                rows.append((birth, death))
        return np.asarray(rows, dtype=float).reshape(-1, 2)

    def translate(self, offset: float) -> None:
        for summand in self.summands:
            summand.birth = (summand.birth[0] + offset, summand.birth[1] + offset)
            if summand.death is not None:
                summand.death = (summand.death[0] + offset, summand.death[1] + offset)


__all__ = ["Module", "Summand", "IntervalModule"]

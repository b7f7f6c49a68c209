"""Lines of the primal plane as points of the dual parameter space."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

from .types import AngleType, AxisType, Point

_CONTAINS_TOL = 1e-12


@dataclass(frozen=True)
class DualPoint:
    """A line with non-negative slope in one of the four dual charts.

    The line passes through ``(mu, 0)`` for x-type lines and ``(0, mu)`` for
    y-type lines.  Its direction is ``(1, lambda)`` when flat and
    ``(lambda, 1)`` when steep, so ``lambda_ = 1`` is the diagonal slope in
    every chart.
    """

    axis_type: AxisType
    angle_type: AngleType
    lambda_: float
    mu: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "lambda_", float(self.lambda_))
        object.__setattr__(self, "mu", float(self.mu))
        if not 0.0 <= self.lambda_ <= 1.0:
            raise ValueError(f"lambda must lie in [0, 1], got {self.lambda_}")

    def is_x_type(self) -> bool:
        return self.axis_type is AxisType.x_type

    def is_y_type(self) -> bool:
        return self.axis_type is AxisType.y_type

    def is_flat(self) -> bool:
        return self.angle_type is AngleType.flat

    def is_steep(self) -> bool:
        return self.angle_type is AngleType.steep

    def is_horizontal(self) -> bool:
        return self.is_flat() and self.lambda_ == 0.0

    def is_vertical(self) -> bool:
        return self.is_steep() and self.lambda_ == 0.0

    def x_slope(self) -> float:
        return 1.0 if self.is_flat() else self.lambda_

    def y_slope(self) -> float:
        return self.lambda_ if self.is_flat() else 1.0

    def x_intercept(self) -> float:
        if self.is_x_type():
            return self.mu
        if self.is_horizontal():
            return -math.inf
        return -self.mu * self.x_slope() / self.y_slope()

    def y_intercept(self) -> float:
        if self.is_y_type():
            return self.mu
        if self.is_vertical():
            return -math.inf
        return -self.mu * self.y_slope() / self.x_slope()

    def y_from_x(self, x: float) -> float:
        if self.is_vertical():
            raise ValueError("y_from_x is undefined on a vertical line")
        if self.is_x_type():
            return (x - self.mu) * self.y_slope() / self.x_slope()
        return self.mu + x * self.y_slope() / self.x_slope()

    def x_from_y(self, y: float) -> float:
        if self.is_horizontal():
            raise ValueError("x_from_y is undefined on a horizontal line")
        if self.is_x_type():
            return self.mu + y * self.x_slope() / self.y_slope()
        return (y - self.mu) * self.x_slope() / self.y_slope()

    def _push_terms(self, p: Point) -> Tuple[float, float]:
        # (value reached moving p up to the line, value reached moving p right)
        px, py = p
        lam, mu = self.lambda_, self.mu
        if self.is_x_type():
            if self.is_flat():
                return lam * (px - mu), py
            return px - mu, lam * py
        if self.is_flat():
            return lam * px, py - mu
        return px, lam * (py - mu)

    def weighted_push(self, p: Point) -> float:
        """Weighted line parameter of the least point of the line dominating ``p``."""

        vertical, horizontal = self._push_terms(p)
        return vertical if vertical >= horizontal else horizontal

    def contains(self, p: Point) -> bool:
        vertical, horizontal = self._push_terms(p)
        return math.isclose(vertical, horizontal, rel_tol=0.0, abs_tol=_CONTAINS_TOL)

    def goes_below(self, p: Point) -> bool:
        """``True`` if ``p`` lies on or above the line."""

        vertical, horizontal = self._push_terms(p)
        return vertical <= horizontal

    def goes_above(self, p: Point) -> bool:
        """``True`` if ``p`` lies on or below the line."""

        vertical, horizontal = self._push_terms(p)
        return vertical >= horizontal

    def sort_key(self) -> Tuple[int, int, float, float]:
        return (self.axis_type.value, self.angle_type.value, self.lambda_, self.mu)

    def __str__(self) -> str:
        return (
            f"DualPoint({self.axis_type.name}, {self.angle_type.name}, "
            f"lambda={self.lambda_:.6g}, mu={self.mu:.6g})"
        )


def diagonal_line(axis_type: AxisType = AxisType.x_type, angle_type: AngleType = AngleType.flat) -> DualPoint:
    return DualPoint(axis_type, angle_type, 1.0, 0.0)


__all__ = ["DualPoint", "diagonal_line"]

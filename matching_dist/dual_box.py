"""Axis-aligned rectangles of lines inside one dual chart."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Set

import numpy as np

from .dual_point import DualPoint
from .types import AngleType, AxisType, Point, ValuePoint


@dataclass(frozen=True)
class DualBox:
    axis_type: AxisType
    angle_type: AngleType
    lambda_min: float
    lambda_max: float
    mu_min: float
    mu_max: float

    def __post_init__(self) -> None:
        if self.lambda_min > self.lambda_max or self.mu_min > self.mu_max:
            raise ValueError(
                f"degenerate dual box: lambda [{self.lambda_min}, {self.lambda_max}], "
                f"mu [{self.mu_min}, {self.mu_max}]"
            )

    @classmethod
    def from_corners(cls, lower_left: DualPoint, upper_right: DualPoint) -> "DualBox":
        if (lower_left.axis_type, lower_left.angle_type) != (upper_right.axis_type, upper_right.angle_type):
            raise ValueError("dual box corners must belong to the same chart")
        return cls(
            lower_left.axis_type,
            lower_left.angle_type,
            lower_left.lambda_,
            upper_right.lambda_,
            lower_left.mu,
            upper_right.mu,
        )

    def is_flat(self) -> bool:
        return self.angle_type is AngleType.flat

    def is_x_type(self) -> bool:
        return self.axis_type is AxisType.x_type

    def _line(self, lambda_: float, mu: float) -> DualPoint:
        return DualPoint(self.axis_type, self.angle_type, lambda_, mu)

    def lower_left(self) -> DualPoint:
        return self._line(self.lambda_min, self.mu_min)

    def lower_right(self) -> DualPoint:
        return self._line(self.lambda_max, self.mu_min)

    def upper_left(self) -> DualPoint:
        return self._line(self.lambda_min, self.mu_max)

    def upper_right(self) -> DualPoint:
        return self._line(self.lambda_max, self.mu_max)

    def center(self) -> DualPoint:
        return self._line(
            0.5 * (self.lambda_min + self.lambda_max),
            0.5 * (self.mu_min + self.mu_max),
        )

    def point_at(self, vp: ValuePoint) -> DualPoint:
        if vp is ValuePoint.lower_left:
            return self.lower_left()
        if vp is ValuePoint.lower_right:
            return self.lower_right()
        if vp is ValuePoint.upper_left:
            return self.upper_left()
        if vp is ValuePoint.upper_right:
            return self.upper_right()
        return self.center()

    def corners(self) -> List[DualPoint]:
        return [self.lower_left(), self.lower_right(), self.upper_left(), self.upper_right()]

    def contains(self, line: DualPoint) -> bool:
        return (
            line.axis_type is self.axis_type
            and line.angle_type is self.angle_type
            and self.lambda_min <= line.lambda_ <= self.lambda_max
            and self.mu_min <= line.mu <= self.mu_max
        )

    def refine(self) -> List["DualBox"]:
        """Quadtree split: lower-left, lower-right, upper-left, upper-right children."""

        lambda_mid = 0.5 * (self.lambda_min + self.lambda_max)
        mu_mid = 0.5 * (self.mu_min + self.mu_max)
        return [
            DualBox(self.axis_type, self.angle_type, self.lambda_min, lambda_mid, self.mu_min, mu_mid),
            DualBox(self.axis_type, self.angle_type, lambda_mid, self.lambda_max, self.mu_min, mu_mid),
            DualBox(self.axis_type, self.angle_type, self.lambda_min, lambda_mid, mu_mid, self.mu_max),
            DualBox(self.axis_type, self.angle_type, lambda_mid, self.lambda_max, mu_mid, self.mu_max),
        ]

    def _mu_through(self, p: Point, lambda_: float) -> Optional[float]:
        px, py = p
        if self.is_x_type():
            if self.is_flat():
                return px - py / lambda_ if lambda_ > 0.0 else None
            return px - lambda_ * py
        if self.is_flat():
            return py - lambda_ * px
        return py - px / lambda_ if lambda_ > 0.0 else None

    def _lambda_through(self, p: Point, mu: float) -> Optional[float]:
        px, py = p
        if self.is_x_type():
            if self.is_flat():
                return py / (px - mu) if px > mu else None
            return (px - mu) / py if py > 0.0 else None
        if self.is_flat():
            return (py - mu) / px if px > 0.0 else None
        return px / (py - mu) if py > mu else None

    def critical_points(self, p: Point) -> List[DualPoint]:
        """Lines of the box at which the weighted push of ``p`` can attain its extrema.

        Besides the corners these are the points on the box boundary where
        the line passes through ``p``, where the push switches between a
        vertical and a horizontal move.  Both terms of the push are monotone
        or bilinear in ``(lambda, mu)``, so their extrema sit on corners.
        """

        candidates: Set[tuple] = {
            (self.lambda_min, self.mu_min),
            (self.lambda_max, self.mu_min),
            (self.lambda_min, self.mu_max),
            (self.lambda_max, self.mu_max),
        }

        for lambda_ in (self.lambda_min, self.lambda_max):
            mu = self._mu_through(p, lambda_)
            if mu is not None and self.mu_min <= mu <= self.mu_max:
                candidates.add((lambda_, mu))

        for mu in (self.mu_min, self.mu_max):
            lambda_ = self._lambda_through(p, mu)
            if lambda_ is not None and self.lambda_min <= lambda_ <= self.lambda_max:
                candidates.add((lambda_, mu))

        return [self._line(lambda_, mu) for lambda_, mu in sorted(candidates)]

    def grid_points(self, n_lambda: int, n_mu: int) -> Iterator[DualPoint]:
        """Interior points of a regular ``n_lambda`` x ``n_mu`` grid."""

        h_lambda = (self.lambda_max - self.lambda_min) / n_lambda
        h_mu = (self.mu_max - self.mu_min) / n_mu
        for i in range(1, n_lambda):
            for j in range(1, n_mu):
                yield self._line(self.lambda_min + i * h_lambda, self.mu_min + j * h_mu)

    def random_point(self, rng: np.random.Generator) -> DualPoint:
        lambda_ = float(rng.uniform(self.lambda_min, self.lambda_max))
        mu = float(rng.uniform(self.mu_min, self.mu_max))
        return self._line(min(lambda_, self.lambda_max), min(mu, self.mu_max))

    def __str__(self) -> str:
        return (
            f"DualBox({self.axis_type.name}, {self.angle_type.name}, "
            f"lambda=[{self.lambda_min:.6g}, {self.lambda_max:.6g}], "
            f"mu=[{self.mu_min:.6g}, {self.mu_max:.6g}])"
        )


__all__ = ["DualBox"]

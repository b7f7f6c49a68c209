from __future__ import annotations

from enum import Enum
from typing import Tuple, Union

Point = Tuple[float, float]


class AxisType(Enum):
    """Which coordinate axis the ``mu`` parameter of a line is measured on."""

    x_type = 0
    y_type = 1


class AngleType(Enum):
    """Flat lines have slope in ``[0, 1]``, steep lines in ``[1, inf]``."""

    flat = 0
    steep = 1


class ValuePoint(Enum):
    """Sample locations of a cell: its four corners and its center."""

    upper_left = 0
    upper_right = 1
    lower_left = 2
    lower_right = 3
    center = 4


K_CORNER_VPS: Tuple[ValuePoint, ...] = (
    ValuePoint.lower_left,
    ValuePoint.upper_left,
    ValuePoint.upper_right,
    ValuePoint.lower_right,
)

K_ALL_VPS: Tuple[ValuePoint, ...] = K_CORNER_VPS + (ValuePoint.center,)


class BoundStrategy(Enum):
    bruteforce = "bruteforce"
    local_dual_bound = "local_dual_bound"
    local_dual_bound_refined = "local_dual_bound_refined"
    local_dual_bound_for_each_point = "local_dual_bound_for_each_point"
    local_combined = "local_combined"


class TraverseStrategy(Enum):
    depth_first = "depth_first"
    breadth_first = "breadth_first"
    breadth_first_value = "breadth_first_value"
    upper_bound = "upper_bound"


class MatchingDistanceError(RuntimeError):
    """Base class for fatal errors raised by the dual-space search."""


class MissingUpperBoundError(MatchingDistanceError):
    """Raised when a queued cell has no upper bound under ``upper_bound`` traversal."""


class EmptyCellError(MatchingDistanceError):
    """Raised when a refined cell carries no sampled value."""


class UnknownStrategyError(MatchingDistanceError):
    """Raised for a strategy value outside the known enumeration."""


class UnsoundBoundError(MatchingDistanceError):
    """Raised when a sampled value exceeds the analytic upper bound on a cell."""


class MaxDepthExceededError(MatchingDistanceError):
    """Raised in strict mode when cells above the threshold were dropped at ``max_depth``."""

    def __init__(self, message: str, lower_bound: float, actual_error: float) -> None:
        super().__init__(message)
        self.lower_bound = lower_bound
        self.actual_error = actual_error


def parse_bound_strategy(value: Union[str, BoundStrategy]) -> BoundStrategy:
    if isinstance(value, BoundStrategy):
        return value
    try:
        return BoundStrategy(str(value).strip().lower().replace("-", "_"))
    except ValueError as exc:
        raise UnknownStrategyError(f"unknown bound strategy '{value}'") from exc


def parse_traverse_strategy(value: Union[str, TraverseStrategy]) -> TraverseStrategy:
    if isinstance(value, TraverseStrategy):
        return value
    try:
        return TraverseStrategy(str(value).strip().lower().replace("-", "_"))
    except ValueError as exc:
        raise UnknownStrategyError(f"unknown traverse strategy '{value}'") from exc


__all__ = [
    "Point",
    "AxisType",
    "AngleType",
    "ValuePoint",
    "K_CORNER_VPS",
    "K_ALL_VPS",
    "BoundStrategy",
    "TraverseStrategy",
    "MatchingDistanceError",
    "MissingUpperBoundError",
    "EmptyCellError",
    "UnknownStrategyError",
    "UnsoundBoundError",
    "MaxDepthExceededError",
    "parse_bound_strategy",
    "parse_traverse_strategy",
]

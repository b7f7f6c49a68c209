"""Parameters and diagnostic records of a matching distance computation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from ..cell import CellWithValue
from ..types import BoundStrategy, TraverseStrategy, parse_bound_strategy, parse_traverse_strategy


@dataclass
class CalculationParams:
    """Options read by :class:`DistanceCalculator` plus the fields it writes back.

    ``hera_epsilon = 0`` requests exact bottleneck distances on every slice.
    """

    delta: float = 0.1
    max_depth: int = 6
    initialization_depth: int = 2
    dim: int = 0
    bound_strategy: BoundStrategy = BoundStrategy.local_combined
    traverse_strategy: TraverseStrategy = TraverseStrategy.breadth_first
    stop_asap: bool = True
    hera_epsilon: float = 0.001
    tolerate_max_iter_exceeded: bool = True
    collect_heat_maps: bool = False

    # written by the calculator
    actual_error: float = math.inf
    actual_max_depth: int = 0
    n_hera_calls: int = 0
    error_guaranteed: bool = True

    def __post_init__(self) -> None:
        self.bound_strategy = parse_bound_strategy(self.bound_strategy)
        self.traverse_strategy = parse_traverse_strategy(self.traverse_strategy)

    def validate(self) -> None:
        if not self.delta >= 0:
            raise ValueError(f"delta must be non-negative, got {self.delta}")
        if self.hera_epsilon < 0:
            raise ValueError(f"hera_epsilon must be non-negative, got {self.hera_epsilon}")
        if self.initialization_depth < 0:
            raise ValueError(f"initialization_depth must be non-negative, got {self.initialization_depth}")
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {self.max_depth}")
        if self.dim < 0:
            raise ValueError(f"dim must be non-negative, got {self.dim}")

    def reset_outputs(self) -> None:
        self.actual_error = math.inf
        self.actual_max_depth = 0
        self.n_hera_calls = 0
        self.error_guaranteed = True


@dataclass
class UbExperimentRecord:
    """Snapshot of the search taken under the ``upper_bound`` traversal."""

    error: float
    lower_bound: float
    upper_bound: float
    cell: Optional[CellWithValue]
    n_hera_calls: int
    time_ms: float

    def __str__(self) -> str:
        return (
            f"error={self.error:.6g} lower_bound={self.lower_bound:.6g} "
            f"upper_bound={self.upper_bound:.6g} n_hera_calls={self.n_hera_calls} "
            f"time_ms={self.time_ms:.1f} cell={self.cell}"
        )


__all__ = ["CalculationParams", "UbExperimentRecord"]

"""Dual boxes annotated with sampled distances and a cached upper bound."""

from __future__ import annotations

import itertools
from typing import Dict, List, Optional

from .dual_box import DualBox
from .dual_point import DualPoint
from .types import K_ALL_VPS, ValuePoint

# child index in DualBox.refine() order -> (parent value point, child value point)
_INHERITED_VALUES = {
    0: ((ValuePoint.lower_left, ValuePoint.lower_left), (ValuePoint.center, ValuePoint.upper_right)),
    1: ((ValuePoint.lower_right, ValuePoint.lower_right), (ValuePoint.center, ValuePoint.upper_left)),
    2: ((ValuePoint.upper_left, ValuePoint.upper_left), (ValuePoint.center, ValuePoint.lower_right)),
    3: ((ValuePoint.upper_right, ValuePoint.upper_right), (ValuePoint.center, ValuePoint.lower_left)),
}


class CellWithValue:
    """Unit of work of the search: a dual box, its sampled values and its bound."""

    _ids = itertools.count(1)

    def __init__(self, dual_box: DualBox, level: int) -> None:
        if level < 0:
            raise ValueError(f"cell level must be non-negative, got {level}")
        self._dual_box = dual_box
        self._level = level
        self._values: Dict[ValuePoint, float] = {}
        self._stored_upper_bound: Optional[float] = None
        self.id = next(CellWithValue._ids)

    @property
    def dual_box(self) -> DualBox:
        return self._dual_box

    @property
    def level(self) -> int:
        return self._level

    @property
    def values(self) -> Dict[ValuePoint, float]:
        return dict(self._values)

    def value_point(self, vp: ValuePoint) -> DualPoint:
        return self._dual_box.point_at(vp)

    def center(self) -> DualPoint:
        return self._dual_box.center()

    def has_value_at(self, vp: ValuePoint) -> bool:
        return vp in self._values

    def value_at(self, vp: ValuePoint) -> float:
        try:
            return self._values[vp]
        except KeyError as exc:
            raise KeyError(f"cell {self.id} has no value at {vp.name}") from exc

    def set_value_at(self, vp: ValuePoint, value: Optional[float]) -> None:
        if value is None:
            self._values.pop(vp, None)
        else:
            self._values[vp] = float(value)

    def num_values(self) -> int:
        return len(self._values)

    def has_corner_value(self) -> bool:
        return bool(self._values)

    def min_value(self) -> float:
        if not self._values:
            raise ValueError(f"cell {self.id} has no sampled values")
        return min(self._values.values())

    def max_corner_value(self) -> float:
        if not self._values:
            raise ValueError(f"cell {self.id} has no sampled values")
        return max(self._values.values())

    @property
    def stored_upper_bound(self) -> Optional[float]:
        return self._stored_upper_bound

    def has_max_possible_value(self) -> bool:
        return self._stored_upper_bound is not None

    def set_max_possible_value(self, value: float) -> None:
        if value < 0:
            raise ValueError(f"upper bound must be non-negative, got {value}")
        self._stored_upper_bound = float(value)

    def get_refined_cells(self) -> List["CellWithValue"]:
        """Split into four children, each inheriting the parent's corner and center it shares."""

        result: List[CellWithValue] = []
        for idx, refined_box in enumerate(self._dual_box.refine()):
            refined_cell = CellWithValue(refined_box, self._level + 1)
            for parent_vp, child_vp in _INHERITED_VALUES[idx]:
                refined_cell.set_value_at(child_vp, self._values.get(parent_vp))
            result.append(refined_cell)
        return result

    def __str__(self) -> str:
        values = ", ".join(
            f"{vp.name}={self._values[vp]:.6g}" for vp in K_ALL_VPS if vp in self._values
        )
        return (
            f"Cell(id={self.id}, level={self._level}, {self._dual_box}, "
            f"values={{{values}}}, upper_bound={self._stored_upper_bound})"
        )

    __repr__ = __str__


__all__ = ["CellWithValue"]

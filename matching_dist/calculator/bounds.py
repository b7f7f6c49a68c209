"""Upper bounds on the matching distance restricted to a cell of the dual space.

Every bound has the form ``value at a sampled line + displacement``, where
the displacement bounds how far the weighted pushes of the module positions
can move when the line varies over the cell's box.  The bottleneck distance
between the slices moves by at most the sum of both modules'
displacements.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence, Tuple

import numpy as np

from ..cell import CellWithValue
from ..dual_box import DualBox
from ..module import Module
from ..types import K_CORNER_VPS, BoundStrategy, Point, UnknownStrategyError, UnsoundBoundError, ValuePoint
from .params import CalculationParams

logger = logging.getLogger(__name__)


class BoundEstimator:
    def __init__(self, module_a: Module, module_b: Module, params: CalculationParams) -> None:
        self.modules: Tuple[Module, Module] = (module_a, module_b)
        self.params = params

    def get_max_x(self, module: int) -> float:
        return self.modules[module].max_x()

    def get_max_y(self, module: int) -> float:
        return self.modules[module].max_y()

    def get_local_dual_bound(self, dual_box: DualBox, module: Optional[int] = None) -> float:
        """Displacement bound using only the module extents and the box size."""

        if module is None:
            return self.get_local_dual_bound(dual_box, 0) + self.get_local_dual_bound(dual_box, 1)

        d_lambda = dual_box.lambda_max - dual_box.lambda_min
        d_mu = dual_box.mu_max - dual_box.mu_min
        if dual_box.is_flat():
            return self.get_max_x(module) * d_lambda + d_mu
        return self.get_max_y(module) * d_lambda + d_mu

    def get_local_refined_bound(self, dual_box: DualBox, module: Optional[int] = None) -> float:
        """Tighter chart-specific version of :meth:`get_local_dual_bound`."""

        if module is None:
            return self.get_local_refined_bound(dual_box, 0) + self.get_local_refined_bound(dual_box, 1)

        d_lambda = dual_box.lambda_max - dual_box.lambda_min
        d_mu = dual_box.mu_max - dual_box.mu_min
        if dual_box.is_x_type():
            if dual_box.is_flat():
                return dual_box.lambda_max * d_mu + max(0.0, self.get_max_x(module) - dual_box.mu_min) * d_lambda
            return d_mu + self.get_max_y(module) * d_lambda
        if dual_box.is_flat():
            return d_mu + self.get_max_x(module) * d_lambda
        return dual_box.lambda_max * d_mu + max(0.0, self.get_max_y(module) - dual_box.mu_min) * d_lambda

    def get_max_displacement_single_point(self, dual_cell: CellWithValue, vp: ValuePoint, p: Point) -> float:
        """Largest change of the weighted push of ``p`` between the ``vp`` line and any line of the cell."""

        base_value = dual_cell.value_point(vp).weighted_push(p)
        result = 0.0
        for dp in dual_cell.dual_box.critical_points(p):
            result = max(result, abs(base_value - dp.weighted_push(p)))
        return result

    def get_single_dgm_bound(
        self, dual_cell: CellWithValue, vp: ValuePoint, module: int, good_enough_value: float
    ) -> float:
        """Maximal displacement over all positions of one module.

        With ``stop_asap`` the loop stops as soon as the running maximum
        exceeds ``good_enough_value`` and the cheap refined bound is returned
        instead.
        """

        result = 0.0
        max_point: Optional[Point] = None
        for position in self.modules[module].positions():
            displacement = self.get_max_displacement_single_point(dual_cell, vp, position)
            if displacement > result:
                result = displacement
                max_point = position
            if self.params.stop_asap and result > good_enough_value:
                refined = self.get_local_refined_bound(dual_cell.dual_box, module)
                logger.debug(
                    "get_single_dgm_bound: %.6g > good enough %.6g, returning refined bound %.6g",
                    result,
                    good_enough_value,
                    refined,
                )
                return refined

        logger.debug(
            "get_single_dgm_bound: cell=%s module=%d vp=%s result=%.6g max_point=%s",
            dual_cell.id,
            module,
            vp.name,
            result,
            max_point,
        )
        return result

    def get_upper_bound(self, dual_cell: CellWithValue, good_enough_ub: float) -> float:
        if good_enough_ub < 0:
            raise ValueError(f"good_enough_ub must be non-negative, got {good_enough_ub}")

        strategy = self.params.bound_strategy
        if strategy is BoundStrategy.bruteforce:
            return math.inf

        dual_box = dual_cell.dual_box
        if strategy is BoundStrategy.local_dual_bound:
            return dual_cell.min_value() + self.get_local_dual_bound(dual_box)

        if strategy is BoundStrategy.local_dual_bound_refined:
            return dual_cell.min_value() + self.get_local_refined_bound(dual_box)

        if strategy is BoundStrategy.local_combined:
            cheap_upper_bound = dual_cell.min_value() + self.get_local_refined_bound(dual_box)
            if cheap_upper_bound < good_enough_ub:
                return cheap_upper_bound
            return self._for_each_point_bound(dual_cell, good_enough_ub)

        if strategy is BoundStrategy.local_dual_bound_for_each_point:
            return self._for_each_point_bound(dual_cell, good_enough_ub)

        raise UnknownStrategyError(f"unsupported bound strategy {strategy!r}")

    def _for_each_point_bound(self, dual_cell: CellWithValue, good_enough_ub: float) -> float:
        stop_asap = self.params.stop_asap
        result = math.inf
        for vp in K_CORNER_VPS:
            if not dual_cell.has_value_at(vp):
                continue
            base_value = dual_cell.value_at(vp)
            bound_dgm_a = self.get_single_dgm_bound(dual_cell, vp, 0, good_enough_ub)

            if stop_asap and base_value + bound_dgm_a >= good_enough_ub:
                # the cell survives the threshold, the box bound will do
                return dual_cell.min_value() + self.get_local_refined_bound(dual_cell.dual_box)

            bound_dgm_b = self.get_single_dgm_bound(dual_cell, vp, 1, max(0.0, good_enough_ub - bound_dgm_a))
            result = min(result, base_value + bound_dgm_a + bound_dgm_b)

            logger.debug(
                "get_upper_bound: cell=%s vp=%s base=%.6g bound_a=%.6g bound_b=%.6g result=%.6g",
                dual_cell.id,
                vp.name,
                base_value,
                bound_dgm_a,
                bound_dgm_b,
                result,
            )
            if stop_asap and result < good_enough_ub:
                break
        return result

    def check_max_displacement(
        self,
        dual_cell: CellWithValue,
        vp: ValuePoint,
        p: Point,
        n_samples: int = 1000,
        seed: int = 1,
    ) -> float:
        """Compare the analytic displacement of ``p`` with random lines of the cell.

        Raises :class:`UnsoundBoundError` if a sampled line moves ``p`` further
        than the analytic value, which is returned otherwise.
        """

        result = self.get_max_displacement_single_point(dual_cell, vp, p)
        base_value = dual_cell.value_point(vp).weighted_push(p)
        rng = np.random.default_rng(seed)
        for _ in range(n_samples):
            line = dual_cell.dual_box.random_point(rng)
            sampled = abs(base_value - line.weighted_push(p))
            if sampled > result + 1e-9 * max(1.0, result):
                logger.error(
                    "check_max_displacement: p=%s vp=%s cell=%s analytic=%.10g sampled=%.10g line=%s",
                    p,
                    vp.name,
                    dual_cell,
                    result,
                    sampled,
                    line,
                )
                raise UnsoundBoundError(
                    f"displacement of {p} on {line} is {sampled}, analytic bound is {result}"
                )
        return result

    def check_module_displacements(
        self, dual_cell: CellWithValue, vp: ValuePoint, positions: Sequence[Point], n_samples: int = 200
    ) -> None:
        for idx, p in enumerate(positions):
            self.check_max_displacement(dual_cell, vp, p, n_samples=n_samples, seed=idx + 1)


__all__ = ["BoundEstimator"]

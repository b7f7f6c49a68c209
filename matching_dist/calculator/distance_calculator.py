"""Branch-and-bound search for the matching distance over the dual space of lines."""

from __future__ import annotations

import copy
import heapq
import itertools
import logging
import math
import time
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from ..bottleneck import bottleneck_distance
from ..cell import CellWithValue
from ..dual_box import DualBox
from ..dual_point import DualPoint, diagonal_line
from ..logging_utils import debug_log_call
from ..module import Module
from ..types import (
    AngleType,
    AxisType,
    BoundStrategy,
    EmptyCellError,
    MaxDepthExceededError,
    MissingUpperBoundError,
    TraverseStrategy,
    UnknownStrategyError,
    UnsoundBoundError,
    ValuePoint,
)
from .bounds import BoundEstimator
from .config import get_default_params
from .params import CalculationParams, UbExperimentRecord
from .stats import SearchStatistics

logger = logging.getLogger(__name__)

CellKey = Callable[[CellWithValue], tuple]

_UB_RECORD_PERIOD = 20


def dual_cell_key(traverse_strategy: TraverseStrategy) -> CellKey:
    """Priority key of a cell; the queue pops the cell with the largest key first."""

    if traverse_strategy is TraverseStrategy.breadth_first:
        # coarser cells first, hence the minus in front of the level
        return lambda cell: (-cell.level, cell.dual_box.lower_left().sort_key())

    if traverse_strategy is TraverseStrategy.breadth_first_value:
        return lambda cell: (-cell.level, cell.max_corner_value(), cell.dual_box.lower_left().sort_key())

    if traverse_strategy is TraverseStrategy.depth_first:
        return lambda cell: (cell.max_corner_value(), cell.level, cell.dual_box.lower_left().sort_key())

    if traverse_strategy is TraverseStrategy.upper_bound:

        def _upper_bound_key(cell: CellWithValue) -> tuple:
            if not cell.has_max_possible_value():
                raise MissingUpperBoundError(f"no upper bound on cell {cell}")
            return (cell.stored_upper_bound, cell.level, cell.dual_box.lower_left().sort_key())

        return _upper_bound_key

    raise UnknownStrategyError(f"unsupported traverse strategy {traverse_strategy!r}")


def dual_cell_less(a: CellWithValue, b: CellWithValue, traverse_strategy: TraverseStrategy) -> bool:
    key = dual_cell_key(traverse_strategy)
    return key(a) < key(b)


class _QueueEntry:
    __slots__ = ("key", "seq", "cell")

    def __init__(self, key: tuple, seq: int, cell: CellWithValue) -> None:
        self.key = key
        self.seq = seq
        self.cell = cell

    def __lt__(self, other: "_QueueEntry") -> bool:
        # heapq pops the smallest entry first
        if self.key != other.key:
            return self.key > other.key
        return self.seq < other.seq


class DualCellQueue:
    """Max-priority queue of cells ordered by a traversal key."""

    def __init__(self, key: CellKey) -> None:
        self._key = key
        self._heap: List[_QueueEntry] = []
        self._counter = itertools.count()

    def push(self, cell: CellWithValue) -> None:
        heapq.heappush(self._heap, _QueueEntry(self._key(cell), next(self._counter), cell))

    def pop(self) -> CellWithValue:
        return heapq.heappop(self._heap).cell

    def top(self) -> CellWithValue:
        return self._heap[0].cell

    def __len__(self) -> int:
        return len(self._heap)

    def __iter__(self) -> Iterator[CellWithValue]:
        return (entry.cell for entry in self._heap)

    def max_upper_bound(self) -> float:
        return max((entry.cell.stored_upper_bound for entry in self._heap), default=0.0)


class DistanceCalculator:
    """Matching distance between two modules by adaptive refinement of the dual space.

    The modules are copied and translated so that all coordinates are
    non-negative.  Counters, heat maps and experiment records belong to the
    instance and are reset by every :meth:`distance` call.
    """

    def __init__(self, module_a: Module, module_b: Module, params: Optional[CalculationParams] = None) -> None:
        self.params = params if params is not None else get_default_params()
        self.params.validate()

        self.module_a = copy.deepcopy(module_a)
        self.module_b = copy.deepcopy(module_b)
        min_coord = min(self.module_a.minimal_coordinate(), self.module_b.minimal_coordinate())
        if min_coord < 0:
            self.module_a.translate(-min_coord)
            self.module_b.translate(-min_coord)

        self.bounds = BoundEstimator(self.module_a, self.module_b, self.params)

        self.n_hera_calls = 0
        self.stats = SearchStatistics()
        self.heat_maps: Dict[int, Dict[DualPoint, float]] = {}
        self.ub_experiment_results: List[UbExperimentRecord] = []
        self.bound_history: List[Tuple[float, float]] = []

        logger.info(
            "DistanceCalculator constructed, module_a: max_x=%s max_y=%s, module_b: max_x=%s max_y=%s",
            self.module_a.max_x(),
            self.module_a.max_y(),
            self.module_b.max_x(),
            self.module_b.max_y(),
        )

    # ------------------------------------------------------------------
    # Oracle calls

    def distance_on_line_const(self, line: DualPoint) -> float:
        """Weighted bottleneck distance between the slices on ``line``."""

        dgm_a = self.module_a.weighted_slice_diagram(line, dim=self.params.dim)
        dgm_b = self.module_b.weighted_slice_diagram(line, dim=self.params.dim)
        epsilon = self.params.hera_epsilon
        if epsilon > 0:
            # keeps sampled values below the exact slice distance
            result = bottleneck_distance(dgm_a, dgm_b, epsilon) / (1.0 + epsilon)
        else:
            result = bottleneck_distance(dgm_a, dgm_b)
        logger.debug(
            "Slice distance: dgm_a.size=%d dgm_b.size=%d line=%s result=%.6g",
            len(dgm_a),
            len(dgm_b),
            line,
            result,
        )
        return result

    def distance_on_line(self, line: DualPoint) -> float:
        self.n_hera_calls += 1
        return self.distance_on_line_const(line)

    def get_hera_calls_number(self) -> int:
        return self.n_hera_calls

    def set_cell_central_value(self, dual_cell: CellWithValue) -> None:
        central_line = dual_cell.center()
        new_value = self.distance_on_line(central_line)
        self.stats.hera_calls[dual_cell.level + 1] += 1
        dual_cell.set_value_at(ValuePoint.center, new_value)
        self.params.actual_max_depth = max(self.params.actual_max_depth, dual_cell.level + 1)

        if self.params.collect_heat_maps and self.params.bound_strategy is BoundStrategy.bruteforce:
            self.heat_maps.setdefault(dual_cell.level, {})[central_line] = new_value

    # ------------------------------------------------------------------
    # Initial grid

    def get_refined_grid(
        self, init_depth: int, calculate_on_intermediate: bool = False, calculate_on_last: bool = True
    ) -> List[CellWithValue]:
        """The four chart cells refined ``init_depth`` times.

        Every chart shares the diagonal line at its lower-right corner, so a
        single oracle call seeds all four.  Centers are sampled before the
        last split (``calculate_on_last``) or before every split
        (``calculate_on_intermediate``), so every leaf inherits a value.
        """

        x_max = max(self.module_a.max_x(), self.module_b.max_x())
        y_max = max(self.module_a.max_y(), self.module_b.max_y())

        result = [
            CellWithValue(DualBox(AxisType.x_type, AngleType.flat, 0.0, 1.0, 0.0, x_max), 0),
            CellWithValue(DualBox(AxisType.x_type, AngleType.steep, 0.0, 1.0, 0.0, x_max), 0),
            CellWithValue(DualBox(AxisType.y_type, AngleType.flat, 0.0, 1.0, 0.0, y_max), 0),
            CellWithValue(DualBox(AxisType.y_type, AngleType.steep, 0.0, 1.0, 0.0, y_max), 0),
        ]

        diagonal_value = self.distance_on_line(diagonal_line())
        self.stats.hera_calls[0] += 1
        for dual_cell in result:
            dual_cell.set_value_at(ValuePoint.lower_right, diagonal_value)

        for depth in range(1, init_depth + 1):
            refined_result: List[CellWithValue] = []
            for dual_cell in result:
                if calculate_on_intermediate or (calculate_on_last and depth == init_depth):
                    self.set_cell_central_value(dual_cell)
                refined_result.extend(dual_cell.get_refined_cells())
            result = refined_result

        return result

    @debug_log_call(logger, name="DistanceCalculator.get_initial_dual_grid", log_result=False)
    def get_initial_dual_grid(self) -> Tuple[List[CellWithValue], float]:
        """Initial queue population with upper bounds, and the initial lower bound."""

        result = self.get_refined_grid(self.params.initialization_depth, False, True)
        lower_bound = max(dual_cell.max_corner_value() for dual_cell in result)

        good_enough_ub = self.get_good_enough_upper_bound(lower_bound)
        for dual_cell in result:
            dual_cell.set_max_possible_value(self.bounds.get_upper_bound(dual_cell, good_enough_ub))
            logger.debug("Initial cell %s", dual_cell)

        return result, lower_bound

    # ------------------------------------------------------------------
    # Bookkeeping

    def get_good_enough_upper_bound(self, lower_bound: float) -> float:
        # under the upper_bound traversal only cells that cannot improve the lower bound are pruned
        if self.params.traverse_strategy is TraverseStrategy.upper_bound:
            return lower_bound
        return (1.0 + self.params.delta) * lower_bound

    def current_error(self, lower_bound: float, upper_bound: float) -> float:
        """Relative gap between the bounds, stored in ``params.actual_error``."""

        if math.isinf(lower_bound):
            error = 0.0
        elif lower_bound > 0.0:
            error = (upper_bound - lower_bound) / lower_bound
        elif upper_bound <= lower_bound:
            error = 0.0
        else:
            error = math.inf
        self.params.actual_error = error
        return error

    @staticmethod
    def get_max_possible_value(cells) -> float:
        return max((dual_cell.stored_upper_bound for dual_cell in cells), default=0.0)

    def _is_below_threshold(self, upper_bound: float, lower_bound: float) -> bool:
        if self.params.traverse_strategy is TraverseStrategy.upper_bound:
            return upper_bound <= lower_bound
        if self.params.bound_strategy is BoundStrategy.bruteforce:
            return False
        return upper_bound <= (1.0 + self.params.delta) * lower_bound

    def _record_ub_experiment(
        self, lower_bound: float, upper_bound: float, top: Optional[CellWithValue], start_time: float
    ) -> None:
        n_calls = self.n_hera_calls
        if n_calls >= _UB_RECORD_PERIOD and n_calls % _UB_RECORD_PERIOD != 0:
            return
        record = UbExperimentRecord(
            error=self.current_error(lower_bound, upper_bound),
            lower_bound=lower_bound,
            upper_bound=upper_bound,
            cell=top,
            n_hera_calls=n_calls,
            time_ms=(time.perf_counter() - start_time) * 1000.0,
        )
        self.ub_experiment_results.append(record)
        logger.info("[UB_EXPERIMENT] %s", record)

    # ------------------------------------------------------------------
    # Search

    def distance(self) -> float:
        return self.get_distance_pq()

    def get_distance_pq(self) -> float:
        """Run the refine/prune loop and return the certified lower bound."""

        params = self.params
        logger.info(
            "Enter get_distance_pq, bound strategy=%s, traverse strategy=%s, stop_asap=%s, delta=%s",
            params.bound_strategy.value,
            params.traverse_strategy.value,
            params.stop_asap,
            params.delta,
        )

        start_time = time.perf_counter()
        params.reset_outputs()
        self.n_hera_calls = 0
        self.stats = SearchStatistics()
        self.heat_maps = {}
        self.ub_experiment_results = []
        self.bound_history = []
        stats = self.stats

        # bounds of cells dropped past max_depth; they are never seen again
        upper_bound_on_deep_cells = 0.0

        queue = DualCellQueue(dual_cell_key(params.traverse_strategy))
        initial_cells, lower_bound = self.get_initial_dual_grid()
        for init_cell in initial_cells:
            queue.push(init_cell)

        upper_bound = self.get_max_possible_value(initial_cells)
        self.bound_history.append((lower_bound, upper_bound))

        while queue:
            dual_cell = queue.pop()
            if not dual_cell.has_corner_value():
                raise EmptyCellError(f"popped cell without values: {dual_cell}")
            if not dual_cell.has_max_possible_value():
                raise MissingUpperBoundError(f"popped cell without upper bound: {dual_cell}")

            level = dual_cell.level
            stats.cells_considered[level] += 1

            # stored bounds are loose under stop_asap, never discard
            discard_cell = not params.stop_asap and self._is_below_threshold(
                dual_cell.stored_upper_bound, lower_bound
            )

            logger.debug(
                "Current cell %s, upper_bound=%.6g lower_bound=%.6g discard=%s",
                dual_cell,
                upper_bound,
                lower_bound,
                discard_cell,
            )

            if discard_cell:
                stats.cells_discarded[level] += 1
                continue

            self.set_cell_central_value(dual_cell)
            lower_bound = max(lower_bound, dual_cell.value_at(ValuePoint.center))

            if self.current_error(lower_bound, upper_bound) < params.delta:
                self.bound_history.append((lower_bound, upper_bound))
                break

            good_enough_ub = self.get_good_enough_upper_bound(lower_bound)
            for refined_cell in dual_cell.get_refined_cells():
                if refined_cell.num_values() == 0:
                    raise EmptyCellError(f"no value on refined cell {refined_cell}")

                # the parent bound also holds on the child
                upper_bound_on_refined_cell = min(
                    dual_cell.stored_upper_bound,
                    self.bounds.get_upper_bound(refined_cell, good_enough_ub),
                )
                refined_cell.set_max_possible_value(upper_bound_on_refined_cell)

                if refined_cell.level <= params.max_depth:
                    prune_cell = self._is_below_threshold(upper_bound_on_refined_cell, lower_bound)
                    if prune_cell:
                        stats.cells_pruned[refined_cell.level] += 1
                else:
                    prune_cell = True
                    if upper_bound_on_refined_cell > (1.0 + params.delta) * lower_bound:
                        stats.n_too_deep_cells += 1
                    upper_bound_on_deep_cells = max(upper_bound_on_deep_cells, upper_bound_on_refined_cell)

                logger.debug(
                    "Refined cell %s, upper_bound=%.6g prune=%s", refined_cell, upper_bound_on_refined_cell, prune_cell
                )

                if not prune_cell:
                    stats.cells_pushed[refined_cell.level] += 1
                    queue.push(refined_cell)

            if not queue:
                upper_bound = max(upper_bound, upper_bound_on_deep_cells)
            elif params.traverse_strategy is TraverseStrategy.upper_bound:
                upper_bound = max(upper_bound_on_deep_cells, queue.top().stored_upper_bound)
            else:
                upper_bound = max(upper_bound_on_deep_cells, queue.max_upper_bound())

            if params.traverse_strategy is TraverseStrategy.upper_bound:
                self._record_ub_experiment(lower_bound, upper_bound, queue.top() if queue else None, start_time)

            self.bound_history.append((lower_bound, upper_bound))

            if self.current_error(lower_bound, upper_bound) < params.delta:
                break

        self.current_error(lower_bound, upper_bound)
        params.n_hera_calls = self.n_hera_calls

        logger.info(
            "Exiting get_distance_pq, bound_strategy=%s, traverse_strategy=%s, lower_bound=%.6g, "
            "upper_bound=%.6g, current_error=%.6g, actual_max_depth=%d, hera_calls=%d",
            params.bound_strategy.value,
            params.traverse_strategy.value,
            lower_bound,
            upper_bound,
            params.actual_error,
            params.actual_max_depth,
            self.n_hera_calls,
        )
        stats.log(logger)

        if stats.n_too_deep_cells > 0:
            params.error_guaranteed = False
            message = (
                f"Error not guaranteed, there were {stats.n_too_deep_cells} too deep cells. "
                f"Actual error = {params.actual_error}. Increase max_depth or delta"
            )
            if not params.tolerate_max_iter_exceeded:
                raise MaxDepthExceededError(message, lower_bound, params.actual_error)
            logger.warning(message)

        return lower_bound

    # ------------------------------------------------------------------
    # Validation

    def check_upper_bound(self, dual_cell: CellWithValue, n_samples_lambda: int = 100, n_samples_mu: int = 100) -> None:
        """Compare the stored bound of ``dual_cell`` with slice distances on a dense grid of its lines."""

        if not dual_cell.has_max_possible_value():
            raise MissingUpperBoundError(f"no upper bound on cell {dual_cell}")
        upper_bound = dual_cell.stored_upper_bound
        for line in dual_cell.dual_box.grid_points(n_samples_lambda, n_samples_mu):
            other_result = self.distance_on_line_const(line)
            if other_result > upper_bound + 1e-9 * max(1.0, upper_bound):
                logger.error(
                    "check_upper_bound: upper_bound=%.10g sampled=%.10g line=%s cell=%s",
                    upper_bound,
                    other_result,
                    line,
                    dual_cell,
                )
                raise UnsoundBoundError(f"wrong upper bound {upper_bound} on {dual_cell}, line {line} gives {other_result}")


__all__ = [
    "DistanceCalculator",
    "DualCellQueue",
    "dual_cell_key",
    "dual_cell_less",
]

import logging
import math

import pytest

from matching_dist import (
    AngleType,
    AxisType,
    Bifiltration,
    BoundStrategy,
    CalculationParams,
    CellWithValue,
    DistanceCalculator,
    DualBox,
    IntervalModule,
    MaxDepthExceededError,
    MissingUpperBoundError,
    Simplex,
    TraverseStrategy,
    ValuePoint,
    get_default_params,
    matching_distance,
    set_default_params,
)
from matching_dist.calculator import DualCellQueue, dual_cell_key, dual_cell_less


def _point_module(x, y):
    return IntervalModule.from_pairs([((x, y), None)])


def _crossed_bars():
    module_a = IntervalModule.from_pairs([((0.0, 0.0), (4.0, 1.0))])
    module_b = IntervalModule.from_pairs([((0.0, 0.0), (1.0, 4.0))])
    return module_a, module_b


def _params(**overrides):
    options = dict(hera_epsilon=0.0, max_depth=3, initialization_depth=2)
    options.update(overrides)
    return CalculationParams(**options)


def _cell(level=0, value=None, upper_bound=None, lambda_min=0.0):
    cell = CellWithValue(DualBox(AxisType.x_type, AngleType.flat, lambda_min, 1.0, 0.0, 1.0), level)
    if value is not None:
        cell.set_value_at(ValuePoint.lower_left, value)
    if upper_bound is not None:
        cell.set_max_possible_value(upper_bound)
    return cell


_LOCAL_BOUNDS = [s for s in BoundStrategy if s is not BoundStrategy.bruteforce]


@pytest.mark.parametrize("bound_strategy", _LOCAL_BOUNDS)
@pytest.mark.parametrize("traverse_strategy", list(TraverseStrategy))
@pytest.mark.parametrize("point_b, expected", [((1.0, 1.0), 1.0), ((3.0, 1.0), 3.0)])
def test_essential_points_distance(bound_strategy, traverse_strategy, point_b, expected):
    params = _params(bound_strategy=bound_strategy, traverse_strategy=traverse_strategy)
    result = matching_distance(_point_module(0.0, 0.0), _point_module(*point_b), params)
    assert result == pytest.approx(expected)
    assert params.n_hera_calls > 0
    assert params.actual_max_depth >= params.initialization_depth


@pytest.mark.parametrize("traverse_strategy", list(TraverseStrategy))
def test_bruteforce_explores_up_to_max_depth(traverse_strategy):
    params = _params(bound_strategy="bruteforce", traverse_strategy=traverse_strategy, max_depth=2, initialization_depth=1)
    calculator = DistanceCalculator(_point_module(0.0, 0.0), _point_module(3.0, 1.0), params)
    assert calculator.distance() == pytest.approx(3.0)
    assert params.actual_max_depth == 3
    assert math.isinf(params.actual_error)
    assert not params.error_guaranteed
    # the diagonal, 4 level-0 centers, then every cell of levels 1 and 2
    assert calculator.get_hera_calls_number() == 1 + 4 + 16 + 64
    assert calculator.stats.cells_discarded == {}
    assert calculator.stats.cells_pruned == {}


def test_negative_coordinates_are_translated_on_a_copy():
    module_a = _point_module(-1.0, -1.0)
    module_b = _point_module(0.0, 0.0)
    result = matching_distance(module_a, module_b, _params())
    assert result == pytest.approx(1.0)
    assert module_a.positions() == [(-1.0, -1.0)]


@pytest.mark.parametrize("bound_strategy", list(BoundStrategy))
@pytest.mark.parametrize("traverse_strategy", list(TraverseStrategy))
def test_identical_modules_have_zero_distance(bound_strategy, traverse_strategy):
    module = IntervalModule.from_pairs([((0.0, 0.0), (2.0, 1.0)), ((1.0, 0.0), None)])
    params = CalculationParams(
        bound_strategy=bound_strategy,
        traverse_strategy=traverse_strategy,
        max_depth=2,
        initialization_depth=1,
    )
    assert matching_distance(module, module, params) == 0.0


def test_single_vertex_bifiltrations():
    bifiltration_a = Bifiltration([Simplex(0, (0.0, 0.0))])
    bifiltration_b = Bifiltration([Simplex(0, (3.0, 1.0))])
    assert matching_distance(bifiltration_a, bifiltration_b, _params()) == pytest.approx(3.0)


def test_approximate_slices_are_scaled_down():
    params = _params(hera_epsilon=0.01)
    result = matching_distance(_point_module(0.0, 0.0), _point_module(3.0, 1.0), params)
    assert result == pytest.approx(3.0 / 1.01)


@pytest.mark.parametrize("traverse_strategy", list(TraverseStrategy))
def test_bound_history_is_monotone(traverse_strategy):
    params = _params(traverse_strategy=traverse_strategy, max_depth=4)
    calculator = DistanceCalculator(*_crossed_bars(), params)
    result = calculator.distance()

    history = calculator.bound_history
    assert len(history) >= 2
    assert history[-1][0] == result
    for (lower_prev, upper_prev), (lower_next, upper_next) in zip(history, history[1:]):
        assert lower_next >= lower_prev
        assert upper_next <= upper_prev + 1e-12


@pytest.mark.parametrize("stop_asap", [True, False])
@pytest.mark.parametrize("bound_strategy", list(BoundStrategy))
def test_refined_cells_never_loosen_parent_bound(monkeypatch, bound_strategy, stop_asap):
    refinements = []
    original = CellWithValue.get_refined_cells

    def _recording_get_refined_cells(self):
        children = original(self)
        refinements.append((self, children))
        return children

    monkeypatch.setattr(CellWithValue, "get_refined_cells", _recording_get_refined_cells)
    matching_distance(
        *_crossed_bars(),
        _params(bound_strategy=bound_strategy, stop_asap=stop_asap, initialization_depth=1, max_depth=4),
    )

    searched = [(parent, children) for parent, children in refinements if parent.has_max_possible_value()]
    assert searched
    for parent, children in searched:
        for child in children:
            assert child.stored_upper_bound <= parent.stored_upper_bound


def test_too_deep_cells_are_reported(caplog):
    params = _params(bound_strategy="local_dual_bound", max_depth=0, initialization_depth=0)
    calculator = DistanceCalculator(*_crossed_bars(), params)
    with caplog.at_level(logging.WARNING, logger="matching_dist"):
        result = calculator.distance()

    # the diagonal sees identical bars, the x-flat and y-steep centers see [0, 1] against [0, 4]
    assert result == pytest.approx(2.0)
    assert calculator.get_hera_calls_number() == 5
    assert params.actual_max_depth == 1
    assert not params.error_guaranteed
    assert calculator.stats.n_too_deep_cells == 16
    assert "Error not guaranteed" in caplog.text


def test_too_deep_cells_raise_in_strict_mode():
    params = _params(
        bound_strategy="local_dual_bound",
        max_depth=0,
        initialization_depth=0,
        tolerate_max_iter_exceeded=False,
    )
    with pytest.raises(MaxDepthExceededError) as excinfo:
        matching_distance(*_crossed_bars(), params)
    assert excinfo.value.lower_bound == pytest.approx(2.0)
    assert excinfo.value.actual_error > params.delta


def test_repeated_runs_reset_state():
    params = _params(max_depth=4)
    calculator = DistanceCalculator(*_crossed_bars(), params)
    first = calculator.distance()
    first_calls = calculator.get_hera_calls_number()
    first_history = list(calculator.bound_history)

    assert calculator.distance() == first
    assert calculator.get_hera_calls_number() == first_calls
    assert calculator.bound_history == first_history
    assert params.n_hera_calls == first_calls
    assert sum(calculator.stats.hera_calls.values()) == first_calls


def test_initial_grid_shares_diagonal_value():
    calculator = DistanceCalculator(*_crossed_bars(), _params(initialization_depth=2))
    cells, lower_bound = calculator.get_initial_dual_grid()
    assert len(cells) == 4 * 16
    assert all(cell.level == 2 and cell.has_max_possible_value() for cell in cells)
    assert lower_bound == max(cell.max_corner_value() for cell in cells)
    # one diagonal call and one center per level-1 cell
    assert calculator.get_hera_calls_number() == 1 + 16
    diagonal_cells = [
        cell for cell in cells if cell.dual_box.lambda_max == 1.0 and cell.dual_box.mu_min == 0.0
    ]
    assert len(diagonal_cells) == 4
    assert len({cell.value_at(ValuePoint.lower_right) for cell in diagonal_cells}) == 1


@pytest.mark.parametrize("bound_strategy", list(BoundStrategy))
def test_initial_dual_grid_is_idempotent(bound_strategy):
    calculator = DistanceCalculator(*_crossed_bars(), _params(bound_strategy=bound_strategy, initialization_depth=3))
    first_cells, first_lower_bound = calculator.get_initial_dual_grid()
    second_cells, second_lower_bound = calculator.get_initial_dual_grid()

    assert second_lower_bound == first_lower_bound
    assert len(second_cells) == len(first_cells)
    for first, second in zip(first_cells, second_cells):
        assert second is not first
        assert second.dual_box == first.dual_box
        assert second.level == first.level
        assert second.values == first.values
        assert second.stored_upper_bound == first.stored_upper_bound


def test_current_error():
    calculator = DistanceCalculator(*_crossed_bars(), _params())
    assert calculator.current_error(2.0, 3.0) == pytest.approx(0.5)
    assert calculator.current_error(math.inf, math.inf) == 0.0
    assert calculator.current_error(0.0, 0.0) == 0.0
    assert math.isinf(calculator.current_error(0.0, 1.0))
    assert math.isinf(calculator.params.actual_error)


def test_good_enough_upper_bound_depends_on_traversal():
    calculator = DistanceCalculator(*_crossed_bars(), _params(delta=0.5))
    assert calculator.get_good_enough_upper_bound(2.0) == pytest.approx(3.0)
    calculator = DistanceCalculator(*_crossed_bars(), _params(delta=0.5, traverse_strategy="upper_bound"))
    assert calculator.get_good_enough_upper_bound(2.0) == pytest.approx(2.0)


def test_traversal_order():
    coarse, fine = _cell(level=0, value=1.0, upper_bound=5.0), _cell(level=1, value=3.0, upper_bound=4.0)

    assert dual_cell_less(fine, coarse, TraverseStrategy.breadth_first)
    assert dual_cell_less(fine, coarse, TraverseStrategy.breadth_first_value)
    assert dual_cell_less(coarse, fine, TraverseStrategy.depth_first)
    assert dual_cell_less(fine, coarse, TraverseStrategy.upper_bound)

    queue = DualCellQueue(dual_cell_key(TraverseStrategy.depth_first))
    for cell in (coarse, fine, _cell(level=2, value=2.0, upper_bound=1.0)):
        queue.push(cell)
    assert queue.max_upper_bound() == 5.0
    assert [queue.pop().level for _ in range(3)] == [1, 2, 0]
    assert queue.max_upper_bound() == 0.0


def test_breadth_first_breaks_level_ties_by_lower_left_corner():
    left, right = _cell(value=1.0), _cell(value=1.0, lambda_min=0.5)
    assert dual_cell_less(left, right, TraverseStrategy.breadth_first)
    queue = DualCellQueue(dual_cell_key(TraverseStrategy.breadth_first))
    queue.push(left)
    queue.push(right)
    assert queue.top() is right


def test_upper_bound_traversal_needs_bounds():
    with pytest.raises(MissingUpperBoundError):
        dual_cell_key(TraverseStrategy.upper_bound)(_cell(value=1.0))


def test_ub_experiment_records():
    params = _params(traverse_strategy="upper_bound", bound_strategy="local_dual_bound_refined", max_depth=4)
    calculator = DistanceCalculator(*_crossed_bars(), params)
    calculator.distance()

    records = calculator.ub_experiment_results
    assert records
    assert all(record.n_hera_calls < 20 or record.n_hera_calls % 20 == 0 for record in records)
    assert all(record.lower_bound <= record.upper_bound for record in records)
    assert "upper_bound=" in str(records[0])


def test_ub_experiment_records_only_under_upper_bound_traversal():
    calculator = DistanceCalculator(*_crossed_bars(), _params(max_depth=4))
    calculator.distance()
    assert calculator.ub_experiment_results == []


def test_heat_maps_collected_for_bruteforce():
    params = _params(bound_strategy="bruteforce", collect_heat_maps=True, max_depth=2, initialization_depth=1)
    calculator = DistanceCalculator(_point_module(0.0, 0.0), _point_module(1.0, 1.0), params)
    calculator.distance()

    assert sorted(calculator.heat_maps) == [0, 1, 2]
    assert len(calculator.heat_maps[2]) == 64
    assert all(value <= 1.0 for level in calculator.heat_maps.values() for value in level.values())


def test_default_params_are_copied(monkeypatch):
    monkeypatch.setattr("matching_dist.calculator.config._DEFAULT_PARAMS", CalculationParams())

    params = get_default_params()
    params.delta = 0.9
    assert get_default_params().delta == 0.1

    custom = CalculationParams(delta=0.25, max_depth=3)
    set_default_params(custom)
    custom.delta = 0.75
    assert get_default_params().delta == 0.25
    assert get_default_params().max_depth == 3

    with pytest.raises(ValueError):
        set_default_params(CalculationParams(delta=-1.0))


def test_invalid_params_rejected():
    with pytest.raises(ValueError):
        DistanceCalculator(*_crossed_bars(), CalculationParams(delta=-0.1))
    with pytest.raises(ValueError):
        DistanceCalculator(*_crossed_bars(), CalculationParams(max_depth=-1))


def test_max_possible_value_over_cells():
    cells = [_cell(value=1.0, upper_bound=2.0), _cell(value=1.0, upper_bound=6.5)]
    assert DistanceCalculator.get_max_possible_value(cells) == 6.5
    assert DistanceCalculator.get_max_possible_value([]) == 0.0

import math

import pytest

from matching_dist import (
    AngleType,
    AxisType,
    BoundEstimator,
    BoundStrategy,
    CalculationParams,
    CellWithValue,
    DistanceCalculator,
    DualBox,
    IntervalModule,
    UnknownStrategyError,
    ValuePoint,
    matching_distance,
)
from matching_dist.types import K_CORNER_VPS


def _modules():
    module_a = IntervalModule.from_pairs([((0.0, 0.0), (4.0, 1.0)), ((1.0, 0.5), (3.0, 3.0))])
    module_b = IntervalModule.from_pairs([((0.0, 0.0), (1.0, 4.0)), ((2.0, 1.0), None)])
    return module_a, module_b


def _estimator(**overrides):
    module_a, module_b = _modules()
    return BoundEstimator(module_a, module_b, CalculationParams(**overrides))


def _cell(axis=AxisType.x_type, angle=AngleType.flat, box=(0.25, 0.5, 1.0, 2.0)):
    cell = CellWithValue(DualBox(axis, angle, *box), 2)
    cell.set_value_at(ValuePoint.lower_left, 1.5)
    cell.set_value_at(ValuePoint.upper_right, 1.0)
    return cell


def test_bruteforce_has_no_bound():
    estimator = _estimator(bound_strategy=BoundStrategy.bruteforce)
    assert math.isinf(estimator.get_upper_bound(_cell(), 0.0))


@pytest.mark.parametrize("axis", list(AxisType))
@pytest.mark.parametrize("angle", list(AngleType))
def test_refined_bound_is_not_worse_than_dual_bound(axis, angle):
    estimator = _estimator()
    box = DualBox(axis, angle, 0.25, 0.5, 1.0, 2.0)
    for module in (0, 1):
        assert estimator.get_local_refined_bound(box, module) <= estimator.get_local_dual_bound(box, module) + 1e-12
    assert estimator.get_local_dual_bound(box) == pytest.approx(
        estimator.get_local_dual_bound(box, 0) + estimator.get_local_dual_bound(box, 1)
    )


def test_local_dual_bound_formula():
    estimator = _estimator(bound_strategy="local_dual_bound")
    cell = _cell()
    # flat chart: max_x * d_lambda + d_mu per module, max_x is 4 and 2
    expected = 1.0 + (4.0 * 0.25 + 1.0) + (2.0 * 0.25 + 1.0)
    assert estimator.get_upper_bound(cell, 0.0) == pytest.approx(expected)


def test_local_refined_bound_uses_min_value():
    estimator = _estimator(bound_strategy=BoundStrategy.local_dual_bound_refined)
    cell = _cell()
    expected = cell.min_value() + estimator.get_local_refined_bound(cell.dual_box)
    assert estimator.get_upper_bound(cell, 0.0) == pytest.approx(expected)


def test_single_point_displacement_matches_corner_values():
    estimator = _estimator()
    cell = _cell(axis=AxisType.x_type, angle=AngleType.steep)
    p = (3.0, 1.0)
    # x-steep push is max(px - mu, lambda * py), its extremes sit on the corners
    pushes = [line.weighted_push(p) for line in cell.dual_box.corners()]
    base = cell.value_point(ValuePoint.lower_left).weighted_push(p)
    expected = max(abs(base - value) for value in pushes)
    assert estimator.get_max_displacement_single_point(cell, ValuePoint.lower_left, p) == pytest.approx(expected)


def test_stop_asap_returns_refined_bound_when_cell_survives():
    estimator = _estimator(bound_strategy=BoundStrategy.local_dual_bound_for_each_point, stop_asap=True)
    cell = _cell()
    expected = cell.min_value() + estimator.get_local_refined_bound(cell.dual_box)
    assert estimator.get_upper_bound(cell, 0.0) == pytest.approx(expected)


def test_stop_asap_stops_at_first_corner_below_threshold():
    cell = _cell()
    exhaustive = _estimator(bound_strategy=BoundStrategy.local_dual_bound_for_each_point, stop_asap=False)
    eager = _estimator(bound_strategy=BoundStrategy.local_dual_bound_for_each_point, stop_asap=True)

    first_corner = (
        cell.value_at(ValuePoint.lower_left)
        + exhaustive.get_single_dgm_bound(cell, ValuePoint.lower_left, 0, math.inf)
        + exhaustive.get_single_dgm_bound(cell, ValuePoint.lower_left, 1, math.inf)
    )
    bound = eager.get_upper_bound(cell, 1e9)
    assert bound == pytest.approx(first_corner)
    assert exhaustive.get_upper_bound(cell, 1e9) <= bound + 1e-12


def test_for_each_point_bound_takes_best_corner():
    estimator = _estimator(bound_strategy=BoundStrategy.local_dual_bound_for_each_point, stop_asap=False)
    cell = _cell()
    candidates = []
    for vp in (ValuePoint.lower_left, ValuePoint.upper_right):
        candidates.append(
            cell.value_at(vp)
            + estimator.get_single_dgm_bound(cell, vp, 0, math.inf)
            + estimator.get_single_dgm_bound(cell, vp, 1, math.inf)
        )
    assert estimator.get_upper_bound(cell, 0.0) == pytest.approx(min(candidates))


def test_combined_uses_cheap_bound_when_it_suffices():
    estimator = _estimator(bound_strategy=BoundStrategy.local_combined)
    cell = _cell()
    cheap = cell.min_value() + estimator.get_local_refined_bound(cell.dual_box)
    assert estimator.get_upper_bound(cell, cheap + 1.0) == pytest.approx(cheap)


def test_negative_good_enough_bound_rejected():
    with pytest.raises(ValueError):
        _estimator().get_upper_bound(_cell(), -1.0)


def test_unknown_strategy_rejected():
    with pytest.raises(UnknownStrategyError):
        CalculationParams(bound_strategy="simulated_annealing")

    estimator = _estimator()
    estimator.params.bound_strategy = "not-a-strategy"
    with pytest.raises(UnknownStrategyError):
        estimator.get_upper_bound(_cell(), 0.0)


@pytest.mark.parametrize("axis", list(AxisType))
@pytest.mark.parametrize("angle", list(AngleType))
def test_sampled_displacements_stay_below_analytic(axis, angle):
    estimator = _estimator()
    cell = _cell(axis=axis, angle=angle, box=(0.0, 1.0, 0.0, 4.0))
    for module in estimator.modules:
        estimator.check_module_displacements(cell, ValuePoint.lower_left, module.positions(), n_samples=100)


def _unbalanced_modules():
    # max_x differs a lot between the modules, so mu_min can exceed the smaller one
    module_a = IntervalModule.from_pairs([((4.0, 0.0), None)])
    module_b = IntervalModule.from_pairs([((0.0, 0.0), None)])
    return module_a, module_b


@pytest.mark.parametrize(
    "axis, angle, box",
    [
        (AxisType.x_type, AngleType.flat, (0.75, 1.0, 3.0, 3.5)),
        (AxisType.y_type, AngleType.steep, (0.75, 1.0, 3.0, 3.5)),
    ],
)
def test_refined_bound_stays_non_negative_above_module_extent(axis, angle, box):
    estimator = BoundEstimator(*_unbalanced_modules(), CalculationParams())
    dual_box = DualBox(axis, angle, *box)
    # module b lies left of and below mu_min, only the lambda_max * d_mu term is left
    assert estimator.get_local_refined_bound(dual_box, 1) == pytest.approx(0.5)
    if axis is AxisType.x_type:
        assert estimator.get_local_refined_bound(dual_box, 0) == pytest.approx(0.75)
        assert estimator.get_local_refined_bound(dual_box) == pytest.approx(1.25)


@pytest.mark.parametrize(
    "bound_strategy",
    [BoundStrategy.local_dual_bound_refined, BoundStrategy.local_combined],
)
def test_refined_bound_is_sound_with_unbalanced_extents(bound_strategy):
    params = CalculationParams(hera_epsilon=0.0, bound_strategy=bound_strategy)
    calculator = DistanceCalculator(*_unbalanced_modules(), params)
    cell = CellWithValue(DualBox(AxisType.x_type, AngleType.flat, 0.75, 1.0, 3.0, 3.5), 3)
    for vp in K_CORNER_VPS:
        cell.set_value_at(vp, calculator.distance_on_line_const(cell.value_point(vp)))

    # the push of (4, 0) is lambda * (4 - mu), largest at (1, 3)
    assert cell.max_corner_value() == pytest.approx(1.0)
    cell.set_max_possible_value(calculator.bounds.get_upper_bound(cell, 0.0))
    assert cell.stored_upper_bound >= 1.0
    calculator.check_upper_bound(cell, 20, 20)


@pytest.mark.parametrize(
    "bound_strategy",
    [BoundStrategy.local_dual_bound_refined, BoundStrategy.local_combined],
)
def test_distance_with_unbalanced_extents(bound_strategy):
    params = CalculationParams(
        hera_epsilon=0.0,
        bound_strategy=bound_strategy,
        initialization_depth=3,
        max_depth=5,
    )
    assert matching_distance(*_unbalanced_modules(), params) == pytest.approx(4.0)

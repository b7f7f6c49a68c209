"""Example pipeline: parse two interval modules and compute their matching distance."""

from matching_dist import CalculationParams, DistanceCalculator, parse_module

MODULE_A = """
intervals
0 0 4 1
1 0 inf inf
"""

MODULE_B = """
intervals
0 0 1 4
0 1 inf inf
"""


def main() -> None:
    module_a = parse_module(MODULE_A)
    module_b = parse_module(MODULE_B)
    params = CalculationParams(delta=0.05, max_depth=7, hera_epsilon=0.0)
    calculator = DistanceCalculator(module_a, module_b, params)
    distance = calculator.distance()
    print("Distance:", distance)
    print("Actual error:", params.actual_error)
    print("Error guaranteed:", params.error_guaranteed)
    print("Bottleneck calls:", calculator.get_hera_calls_number())
    for lower_bound, upper_bound in calculator.bound_history[::10]:
        print(f"  [{lower_bound:.6f}, {upper_bound:.6f}]")


if __name__ == "__main__":
    main()

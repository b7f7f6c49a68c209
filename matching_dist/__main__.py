import argparse
import logging
import sys
from typing import Optional, Sequence

from matching_dist import (
    BoundStrategy,
    CalculationParams,
    MatchingDistanceError,
    ReaderError,
    TraverseStrategy,
    matching_distance,
    read_module,
)

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s:%(name)s:%(message)s",
    )


def _build_params(args: argparse.Namespace) -> CalculationParams:
    params = CalculationParams(
        delta=args.delta,
        max_depth=args.max_depth,
        initialization_depth=args.init_depth,
        dim=args.dim,
        bound_strategy=args.bound_strategy,
        traverse_strategy=args.traverse_strategy,
        stop_asap=not args.no_stop_asap,
        hera_epsilon=args.hera_epsilon,
        tolerate_max_iter_exceeded=not args.strict,
    )
    params.validate()
    return params


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Matching distance between two bifiltrations or modules")
    parser.add_argument("path_a", help="First module or bifiltration file")
    parser.add_argument("path_b", help="Second module or bifiltration file")
    parser.add_argument("--delta", type=float, default=0.1, help="Target relative error (default: 0.1)")
    parser.add_argument("--max-depth", type=int, default=6, help="Maximal refinement level (default: 6)")
    parser.add_argument("--init-depth", type=int, default=2, help="Depth of the initial grid (default: 2)")
    parser.add_argument("--dim", type=int, default=0, help="Homology degree (default: 0)")
    parser.add_argument(
        "--bound-strategy",
        choices=[s.value for s in BoundStrategy],
        default=BoundStrategy.local_combined.value,
        help="Upper bound estimator (default: local_combined)",
    )
    parser.add_argument(
        "--traverse-strategy",
        choices=[s.value for s in TraverseStrategy],
        default=TraverseStrategy.breadth_first.value,
        help="Order in which cells are refined (default: breadth_first)",
    )
    parser.add_argument(
        "--no-stop-asap",
        action="store_true",
        help="Always finish the per-point bound loop instead of stopping once a cell cannot be pruned",
    )
    parser.add_argument(
        "--hera-epsilon",
        type=float,
        default=0.001,
        help="Relative error of slice bottleneck distances, 0 for exact (default: 0.001)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail if the requested error cannot be guaranteed within --max-depth",
    )
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)

    try:
        params = _build_params(args)
        module_a = read_module(args.path_a)
        module_b = read_module(args.path_b)
    except (ReaderError, ValueError, OSError) as exc:
        logger.error("%s", exc)
        return 2

    try:
        result = matching_distance(module_a, module_b, params)
    except MatchingDistanceError as exc:
        logger.error("%s", exc)
        return 1

    print(f"Distance: {result:.10g}")
    print(f"Actual error: {params.actual_error:.6g}")
    print(f"Error guaranteed: {params.error_guaranteed}")
    print(f"Actual max depth: {params.actual_max_depth}")
    print(f"Bottleneck calls: {params.n_hera_calls}")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))

"""Example pipeline: compare a triangle filled early with the same triangle filled late."""

from matching_dist import Bifiltration, CalculationParams, matching_distance


def _triangle(fill_at):
    return Bifiltration.from_vertex_lists(
        [
            ([0], (0.0, 0.0)),
            ([1], (1.0, 0.0)),
            ([2], (0.0, 1.0)),
            ([0, 1], (1.0, 1.0)),
            ([1, 2], (1.0, 1.0)),
            ([0, 2], (1.0, 1.0)),
            ([0, 1, 2], fill_at),
        ]
    )


def main() -> None:
    early = _triangle((1.0, 2.0))
    late = _triangle((3.0, 4.0))
    for dim in (0, 1):
        params = CalculationParams(dim=dim, hera_epsilon=0.0)
        distance = matching_distance(early, late, params)
        print(f"H{dim}: distance={distance:.6f} actual_error={params.actual_error:.4f} "
              f"hera_calls={params.n_hera_calls}")


if __name__ == "__main__":
    main()

"""Matching distance façade over the dual-space search."""

from __future__ import annotations

import logging
from typing import Optional

from ..logging_utils import apply_debug_logging
from ..module import Module
from .bounds import BoundEstimator
from .config import get_default_params, set_default_params
from .distance_calculator import DistanceCalculator, DualCellQueue, dual_cell_key, dual_cell_less
from .params import CalculationParams, UbExperimentRecord
from .stats import SearchStatistics

logger = logging.getLogger(__name__)


def matching_distance(
    module_a: Module, module_b: Module, params: Optional[CalculationParams] = None
) -> float:
    """Matching distance between ``module_a`` and ``module_b``.

    ``params`` receives the achieved relative error and the other output
    fields; when omitted a copy of the process defaults is used.
    """

    if params is None:
        params = get_default_params()
    calculator = DistanceCalculator(module_a, module_b, params)
    result = calculator.distance()
    logger.info(
        "matching_distance=%.6g actual_error=%.6g guaranteed=%s hera_calls=%d",
        result,
        params.actual_error,
        params.error_guaranteed,
        params.n_hera_calls,
    )
    return result


__all__ = [
    "BoundEstimator",
    "CalculationParams",
    "DistanceCalculator",
    "DualCellQueue",
    "SearchStatistics",
    "UbExperimentRecord",
    "dual_cell_key",
    "dual_cell_less",
    "get_default_params",
    "matching_distance",
    "set_default_params",
]


apply_debug_logging(globals(), logger=logger, wrap_methods=False)

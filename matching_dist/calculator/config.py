"""Process-wide default calculation parameters."""

from __future__ import annotations

import copy

from .params import CalculationParams

_DEFAULT_PARAMS = CalculationParams()


def get_default_params() -> CalculationParams:
    return copy.deepcopy(_DEFAULT_PARAMS)


def set_default_params(params: CalculationParams) -> None:
    global _DEFAULT_PARAMS
    params.validate()
    _DEFAULT_PARAMS = copy.deepcopy(params)

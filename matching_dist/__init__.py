from .types import (
    AngleType,
    AxisType,
    BoundStrategy,
    EmptyCellError,
    MatchingDistanceError,
    MaxDepthExceededError,
    MissingUpperBoundError,
    TraverseStrategy,
    UnknownStrategyError,
    UnsoundBoundError,
    ValuePoint,
)
from .dual_point import DualPoint, diagonal_line
from .dual_box import DualBox
from .cell import CellWithValue
from .bottleneck import bottleneck_distance
from .module import IntervalModule, Module, Summand
from .bifiltration import Bifiltration, Simplex
from .reader import ReaderError, parse_module, read_module
from .calculator import (
    BoundEstimator,
    CalculationParams,
    DistanceCalculator,
    SearchStatistics,
    UbExperimentRecord,
    get_default_params,
    matching_distance,
    set_default_params,
)

__all__ = [
    'AngleType',
    'AxisType',
    'BoundStrategy',
    'TraverseStrategy',
    'ValuePoint',
    'MatchingDistanceError',
    'MissingUpperBoundError',
    'EmptyCellError',
    'UnknownStrategyError',
    'UnsoundBoundError',
    'MaxDepthExceededError',
    'DualPoint',
    'diagonal_line',
    'DualBox',
    'CellWithValue',
    'bottleneck_distance',
    'Module',
    'Summand',
    'IntervalModule',
    'Bifiltration',
    'Simplex',
    'ReaderError',
    'parse_module',
    'read_module',
    'BoundEstimator',
    'CalculationParams',
    'DistanceCalculator',
    'SearchStatistics',
    'UbExperimentRecord',
    'get_default_params',
    'matching_distance',
    'set_default_params',
]

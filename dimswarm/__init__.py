"""
dimswarm: Pheromone-Guided Dimension Optimization

A mutable collection of named, typed dimensions whose scalar values are
pushed toward a local minimum of a user-supplied cost function, using
neighbor-informed ("pheromone") weighting as a heuristic for
collaborative gradient descent.
"""

from .errors import (
    DimSwarmError, TypeMismatchError, KeyNotFoundError,
    DivisionByZeroError, InvalidConfigurationError,
)
from .values import (
    Value, Scalar, Fractional, Spectrum, Nested, as_value, value_from_dict
)
from .dimension import Dimension
from .collection import DimensionCollection
from .fusion import FusionEngine, FusionStrategy
from .config import (
    OptimizationConfig, AutoExpandConfig, DEFAULT_SELECTOR_WEIGHTS, VERBOSE_LEVELS
)
from .selector import NeighborSelector, SelectorWeights, Neighbor
from .engine import (
    OptimizationEngine, OptimizationResult, EvolveReport, OptimizerState, StopReason
)
from .utils import setup_logger

__version__ = "0.1.0"

__all__ = [
    # Errors
    'DimSwarmError', 'TypeMismatchError', 'KeyNotFoundError',
    'DivisionByZeroError', 'InvalidConfigurationError',
    # Values
    'Value', 'Scalar', 'Fractional', 'Spectrum', 'Nested', 'as_value', 'value_from_dict',
    # Collection
    'Dimension', 'DimensionCollection',
    # Neighbors and fusion
    'NeighborSelector', 'SelectorWeights', 'Neighbor',
    'FusionEngine', 'FusionStrategy',
    # Configuration
    'OptimizationConfig', 'AutoExpandConfig', 'DEFAULT_SELECTOR_WEIGHTS', 'VERBOSE_LEVELS',
    # Engine
    'OptimizationEngine', 'OptimizationResult', 'EvolveReport', 'OptimizerState', 'StopReason',
    # Utilities
    'setup_logger',
]

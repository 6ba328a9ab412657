"""
Fusion of a dimension's value with its neighbors' values.
"""

import logging
from enum import Enum
from typing import List, Sequence

import numpy as np

from .values import Scalar, Value


logger = logging.getLogger(__name__)


class FusionStrategy(Enum):
    """How a dimension's value is merged with its neighbors."""
    AVERAGE = "average"                    # Unweighted mean
    WEIGHTED_AVERAGE = "weighted_average"  # Target counts as one unit-weight sample
    MEDIAN = "median"                      # Scalar only
    NONE = "none"                          # Pass-through


def weighted_mean(values: Sequence[Value], weights: Sequence[float]) -> Value:
    """
    Weighted mean built from running pairwise combines.

    For Spectrum values a wavelength seen in only some samples is carried
    through unscaled, matching Value.combine().
    """
    running = values[0]
    total = weights[0]
    for value, weight in zip(values[1:], weights[1:]):
        if weight <= 0:
            continue
        total += weight
        running = running.combine(value, weight / total)
    return running


class FusionEngine:
    """Produces a fused Value for a dimension; never mutates anything."""

    def __init__(self, strategy: FusionStrategy = FusionStrategy.WEIGHTED_AVERAGE):
        self.strategy = strategy

    def fuse(self, target, neighbors, strategy: FusionStrategy = None) -> Value:
        """
        Fuse target.value with its neighbors.

        Args:
            target: Dimension being updated
            neighbors: Ranked entries with .dimension and .weight (see NeighborSelector)
            strategy: Overrides the engine's default strategy

        Returns:
            The fused value. Neighbors of a different variant are ignored.
        """
        strategy = strategy or self.strategy
        value = target.value
        if strategy is FusionStrategy.NONE:
            return value

        compatible = [n for n in neighbors if type(n.dimension.value) is type(value)]
        if len(compatible) < len(neighbors):
            logger.debug(
                f"Skipping {len(neighbors) - len(compatible)} neighbor(s) of {target.name!r} "
                f"with a different value variant"
            )
        if not compatible:
            return value

        if strategy is FusionStrategy.AVERAGE:
            values = [value] + [n.dimension.value for n in compatible]
            return weighted_mean(values, [1.0] * len(values))

        if strategy is FusionStrategy.WEIGHTED_AVERAGE:
            neighbor_total = sum(n.weight for n in compatible)
            if neighbor_total <= 0:
                return value
            values = [value] + [n.dimension.value for n in compatible]
            weights = [1.0] + [n.weight / neighbor_total for n in compatible]
            return weighted_mean(values, weights)

        if strategy is FusionStrategy.MEDIAN:
            if not isinstance(value, Scalar):
                logger.debug(f"Median fusion is undefined for {value.kind}; {target.name!r} unchanged")
                return value
            samples: List[float] = [value.value] + [n.dimension.value.value for n in compatible]
            return Scalar(float(np.median(samples)))

        raise ValueError(f"Unknown fusion strategy: {strategy!r}")

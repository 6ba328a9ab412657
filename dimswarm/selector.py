"""
Neighbor Selection

Ranks the dimensions most relevant to a target by combining:
- Value similarity (1 / (1 + distance))
- Spatial proximity (exp(-distance / proximity_scale))
- Semantic tag overlap
- The target's trail pheromone for the candidate

The sum is scaled by the candidate's weight, so a zero-weight dimension
is never selected.

Criteria whose inputs are missing (no coordinates, no tags, different
value variants) contribute zero rather than failing.
"""

import logging
from dataclasses import dataclass
from typing import List

import numpy as np

from .collection import DimensionCollection
from .config import DEFAULT_SELECTOR_WEIGHTS
from .dimension import Dimension
from .errors import InvalidConfigurationError, TypeMismatchError


logger = logging.getLogger(__name__)


@dataclass
class SelectorWeights:
    """Relative importance of each ranking criterion."""
    similarity: float = DEFAULT_SELECTOR_WEIGHTS['similarity']
    proximity: float = DEFAULT_SELECTOR_WEIGHTS['proximity']
    semantic: float = DEFAULT_SELECTOR_WEIGHTS['semantic']
    pheromone: float = DEFAULT_SELECTOR_WEIGHTS['pheromone']

    def validate(self):
        for name in ('similarity', 'proximity', 'semantic', 'pheromone'):
            if getattr(self, name) < 0:
                raise InvalidConfigurationError(f"selector weight {name!r} must be >= 0")


@dataclass
class Neighbor:
    """A ranked neighbor and its relevance weight."""
    dimension: Dimension
    weight: float

    @property
    def name(self) -> str:
        return self.dimension.name


class NeighborSelector:
    """Computes a ranked, weighted subset of dimensions relevant to a target."""

    def __init__(
        self,
        weights: SelectorWeights = None,
        max_neighbors: int = 5,
        proximity_scale: float = 1.0,
        min_score: float = 0.0,
    ):
        self.weights = weights or SelectorWeights()
        self.weights.validate()
        if max_neighbors < 0:
            raise InvalidConfigurationError("max_neighbors must be >= 0")
        if proximity_scale <= 0:
            raise InvalidConfigurationError("proximity_scale must be positive")
        self.max_neighbors = max_neighbors
        self.proximity_scale = proximity_scale
        self.min_score = min_score

    def score(self, target: Dimension, candidate: Dimension) -> float:
        """Relevance of candidate to target, scaled by the candidate's own weight."""
        w = self.weights
        total = 0.0

        try:
            total += w.similarity / (1.0 + target.value.distance_to(candidate.value))
        except TypeMismatchError:
            pass  # Different variants are never similar

        distance = target.spatial_distance(candidate)
        if distance is not None:
            total += w.proximity * float(np.exp(-distance / self.proximity_scale))

        overlap = target.tag_overlap(candidate)
        if overlap is not None:
            total += w.semantic * overlap

        total += w.pheromone * target.trail.get(candidate.name, 0.0)
        return total * candidate.weight

    def rank(
        self,
        target: Dimension,
        collection: DimensionCollection,
        max_neighbors: int = None,
    ) -> List[Neighbor]:
        """
        Rank neighbors of target, most relevant first.

        Args:
            target: Dimension to find neighbors for
            collection: Candidates; the target itself is skipped
            max_neighbors: Overrides the configured cap

        Returns:
            Up to max_neighbors Neighbor entries scoring above min_score.
            Ties keep collection insertion order.
        """
        cap = self.max_neighbors if max_neighbors is None else max_neighbors
        if cap == 0:
            return []

        scored = []
        for candidate in collection:
            if candidate.name == target.name:
                continue
            s = self.score(target, candidate)
            if s > self.min_score:
                scored.append(Neighbor(candidate, s))

        # sort() is stable, so equal scores stay in insertion order
        scored.sort(key=lambda n: n.weight, reverse=True)
        selected = scored[:cap]
        logger.debug(f"Neighbors of {target.name!r}: {[(n.name, round(n.weight, 4)) for n in selected]}")
        return selected

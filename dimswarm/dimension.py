"""
Dimension: a named Value plus its optimization state.
"""

import copy
import math
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple

from .values import Value, as_value


Coordinates = Tuple[float, float, float]


@dataclass
class Dimension:
    """A named, typed value participating in optimization."""
    name: str
    value: Value
    pheromone: float = 1.0          # [0, 1], recent collaborative success
    weight: float = 1.0             # >= 0, scales neighbor relevance
    coordinates: Optional[Coordinates] = None
    tags: FrozenSet[str] = field(default_factory=frozenset)

    # Per-neighbor pheromone: memory of past useful collaborations
    trail: Dict[str, float] = field(default_factory=dict)

    def __post_init__(self):
        if not self.name:
            raise ValueError("Dimension name must be non-empty")
        self.value = as_value(self.value)
        if not 0.0 <= self.pheromone <= 1.0:
            raise ValueError(f"pheromone must be in [0, 1], got {self.pheromone}")
        if self.weight < 0:
            raise ValueError(f"weight must be >= 0, got {self.weight}")
        if self.coordinates is not None:
            if len(self.coordinates) != 3:
                raise ValueError("coordinates must be (x, y, z)")
            self.coordinates = tuple(float(c) for c in self.coordinates)
        self.tags = frozenset(self.tags)
        for neighbor, level in self.trail.items():
            if not 0.0 <= level <= 1.0:
                raise ValueError(f"trail pheromone for {neighbor!r} must be in [0, 1], got {level}")

    def spatial_distance(self, other: 'Dimension') -> Optional[float]:
        """Euclidean distance between coordinates, or None if either lacks them."""
        if self.coordinates is None or other.coordinates is None:
            return None
        return math.dist(self.coordinates, other.coordinates)

    def tag_overlap(self, other: 'Dimension') -> Optional[float]:
        """Fraction of shared tags (Jaccard), or None if either has no tags."""
        if not self.tags or not other.tags:
            return None
        return len(self.tags & other.tags) / len(self.tags | other.tags)

    def forget(self, names: Iterable[str]) -> None:
        """Drop trail entries for the given neighbor names."""
        for name in names:
            self.trail.pop(name, None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'value': self.value.to_dict(),
            'pheromone': self.pheromone,
            'weight': self.weight,
            'coordinates': list(self.coordinates) if self.coordinates else None,
            'tags': sorted(self.tags),
            'trail': dict(self.trail),
        }

    def clone(self) -> 'Dimension':
        """Create a deep copy."""
        return copy.deepcopy(self)

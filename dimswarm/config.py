"""
Configuration and constants for the optimization engine.
"""

import copy
from dataclasses import dataclass, field, asdict, fields
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import InvalidConfigurationError
from .fusion import FusionStrategy


# ============================================================================
# Neighbor Ranking Weights
# ============================================================================

DEFAULT_SELECTOR_WEIGHTS = {
    'similarity': 1.0,
    'proximity': 1.0,
    'semantic': 1.0,
    'pheromone': 1.0,
}


# ============================================================================
# Gradient Estimation
# ============================================================================

GRADIENT_METHODS = ('central', 'forward')


# ============================================================================
# Optimization Parameters
# ============================================================================

@dataclass
class AutoExpandConfig:
    """Settings for growing the collection when optimization stalls."""
    enabled: bool = False
    trigger_stalls: int = 3  # Engine stall count that triggers expansion
    max_dimensions: int = 16
    default_value: float = 0.0
    name_prefix: str = 'auto_'
    
    def validate(self):
        if self.trigger_stalls < 0:
            raise InvalidConfigurationError("trigger_stalls must be >= 0")
        if self.max_dimensions < 0:
            raise InvalidConfigurationError("max_dimensions must be >= 0")
        if not self.name_prefix:
            raise InvalidConfigurationError("name_prefix must be non-empty")


@dataclass
class OptimizationConfig:
    """Options recognized by OptimizationEngine.optimize() and evolve()."""
    learning_rate: float = 0.1
    exploration_boost: float = 0.5
    pheromone_decay_rate: float = 0.05  # Fraction lost per update
    base_pruning_threshold: float = 0.05
    pruning_threshold_multiplier: float = 1.5
    progress_threshold: float = 1e-12
    reward_multiplier: float = 1.0
    collaboration_weight: float = 0.0
    max_neighbors: int = 5
    max_steps: int = 100
    value_bounds: Optional[Tuple[float, float]] = None
    
    # Loop mechanics
    gradient_method: str = 'central'
    finite_difference_step: float = 1e-6
    stall_patience: int = 5
    time_budget: Optional[float] = None  # Seconds
    
    fusion_strategy: FusionStrategy = FusionStrategy.WEIGHTED_AVERAGE
    auto_expand: AutoExpandConfig = field(default_factory=AutoExpandConfig)
    
    # camelCase option names accepted by from_dict()
    ALIASES = {
        'learningRate': 'learning_rate',
        'explorationBoost': 'exploration_boost',
        'pheromoneDecayRate': 'pheromone_decay_rate',
        'basePruningThreshold': 'base_pruning_threshold',
        'pruningThresholdMultiplier': 'pruning_threshold_multiplier',
        'progressThreshold': 'progress_threshold',
        'rewardMultiplier': 'reward_multiplier',
        'collaborationWeight': 'collaboration_weight',
        'maxNeighbors': 'max_neighbors',
        'maxSteps': 'max_steps',
        'valueBounds': 'value_bounds',
    }
    
    def validate(self) -> 'OptimizationConfig':
        """Validate configuration values."""
        if self.learning_rate <= 0:
            raise InvalidConfigurationError("learning_rate must be positive")
        if self.exploration_boost < 0:
            raise InvalidConfigurationError("exploration_boost must be >= 0")
        if not 0 <= self.pheromone_decay_rate <= 1:
            raise InvalidConfigurationError("pheromone_decay_rate must be in [0, 1]")
        if not 0 <= self.base_pruning_threshold <= 1:
            raise InvalidConfigurationError("base_pruning_threshold must be in [0, 1]")
        if self.pruning_threshold_multiplier < 1:
            raise InvalidConfigurationError("pruning_threshold_multiplier must be >= 1")
        if self.progress_threshold < 0:
            raise InvalidConfigurationError("progress_threshold must be >= 0")
        if self.reward_multiplier < 0:
            raise InvalidConfigurationError("reward_multiplier must be >= 0")
        if not 0 <= self.collaboration_weight <= 1:
            raise InvalidConfigurationError("collaboration_weight must be in [0, 1]")
        if self.max_neighbors < 0:
            raise InvalidConfigurationError("max_neighbors must be >= 0")
        if self.max_steps < 1:
            raise InvalidConfigurationError("max_steps must be >= 1")
        if self.value_bounds is not None:
            if len(self.value_bounds) != 2 or self.value_bounds[0] > self.value_bounds[1]:
                raise InvalidConfigurationError("value_bounds must be (low, high) with low <= high")
        if self.gradient_method not in GRADIENT_METHODS:
            raise InvalidConfigurationError(
                f"gradient_method must be one of {GRADIENT_METHODS}, got {self.gradient_method!r}"
            )
        if self.finite_difference_step <= 0:
            raise InvalidConfigurationError("finite_difference_step must be positive")
        if self.stall_patience < 1:
            raise InvalidConfigurationError("stall_patience must be >= 1")
        if self.time_budget is not None and self.time_budget <= 0:
            raise InvalidConfigurationError("time_budget must be positive")
        if not isinstance(self.fusion_strategy, FusionStrategy):
            raise InvalidConfigurationError(f"Unknown fusion strategy: {self.fusion_strategy!r}")
        self.auto_expand.validate()
        return self
    
    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d['fusion_strategy'] = self.fusion_strategy.value
        return d
    
    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> 'OptimizationConfig':
        """Create from a dict of options; unknown keys are rejected."""
        return cls().merged(d)
    
    def clone(self) -> 'OptimizationConfig':
        return copy.deepcopy(self)
    
    def merged(self, overrides: Optional[Mapping[str, Any]] = None) -> 'OptimizationConfig':
        """Return a validated copy with overrides applied."""
        merged = self.clone()
        known = {f.name for f in fields(self)}
        for key, value in (overrides or {}).items():
            name = self.ALIASES.get(key, key)
            if name not in known:
                raise InvalidConfigurationError(f"Unknown option: {key!r}")
            if name == 'fusion_strategy' and not isinstance(value, FusionStrategy):
                try:
                    value = FusionStrategy(value)
                except ValueError:
                    raise InvalidConfigurationError(f"Unknown fusion strategy: {value!r}") from None
            elif name == 'auto_expand' and isinstance(value, Mapping):
                try:
                    value = AutoExpandConfig(**value)
                except TypeError as e:
                    raise InvalidConfigurationError(f"Invalid auto_expand options: {e}") from None
            elif name == 'value_bounds' and value is not None:
                value = tuple(value)
            setattr(merged, name, value)
        return merged.validate()


# ============================================================================
# Logging Configuration
# ============================================================================

LOG_FORMAT = '[%(levelname)s] %(message)s'

VERBOSE_LEVELS = {
    0: 'ERROR',    # Only errors
    1: 'WARNING',  # Warnings and errors
    2: 'INFO',     # Standard progress
    3: 'DEBUG',    # Detailed debug info
}

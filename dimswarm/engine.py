"""
Optimization Engine for Named Dimensions

Main loop for pheromone-guided collaborative gradient descent:
- Per-target finite-difference descent with neighbor gradient blending
- Pheromone-driven fusion passes over all scalar dimensions
- Pheromone decay, reward and stall-adjusted pruning
- Dynamic growth of the collection when progress stalls
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import numpy as np

from .collection import DimensionCollection
from .config import AutoExpandConfig, OptimizationConfig
from .dimension import Dimension
from .errors import InvalidConfigurationError, TypeMismatchError
from .fusion import FusionEngine, FusionStrategy
from .selector import Neighbor, NeighborSelector
from .utils import MovingAverage, clamp, format_time
from .values import Fractional, Number, Scalar, Spectrum, Value


logger = logging.getLogger(__name__)

CostFunction = Callable[[float], float]
Options = Union[OptimizationConfig, Mapping[str, Any], None]


class OptimizerState(Enum):
    """Per-target optimization state."""
    IDLE = "idle"
    EVALUATING = "evaluating"
    IMPROVED = "improved"
    STALLED = "stalled"
    CONVERGED = "converged"


class StopReason(Enum):
    """Why an optimize() run ended."""
    CONVERGED = "converged"
    MAX_STEPS = "max_steps"
    TIME_BUDGET = "time_budget"


@dataclass
class OptimizationResult:
    """Outcome of a single optimize() run."""
    target: str
    initial_value: float
    best_value: float
    initial_cost: float
    best_cost: float
    steps: int
    stop_reason: StopReason
    wavelength: Optional[float] = None
    cost_history: List[float] = field(default_factory=list)
    expanded: List[str] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        return self.stop_reason is StopReason.CONVERGED

    @property
    def improvement(self) -> float:
        return self.initial_cost - self.best_cost

    def to_dict(self) -> Dict[str, Any]:
        return {
            'target': self.target,
            'wavelength': self.wavelength,
            'initial_value': self.initial_value,
            'best_value': self.best_value,
            'initial_cost': self.initial_cost,
            'best_cost': self.best_cost,
            'steps': self.steps,
            'stop_reason': self.stop_reason.value,
            'expanded': list(self.expanded),
        }


@dataclass
class EvolveReport:
    """Outcome of a single evolve() pass."""
    updated: List[str] = field(default_factory=list)
    improved: List[str] = field(default_factory=list)
    total_improvement: float = 0.0
    stall_count: int = 0
    expanded: List[str] = field(default_factory=list)


class OptimizationEngine:
    """Owns a dimension collection and runs the optimization loops over it."""

    def __init__(
        self,
        initial: Union[DimensionCollection, Mapping[str, Union[Value, Number]], None] = None,
        config: OptimizationConfig = None,
        selector: NeighborSelector = None,
        fusion: FusionEngine = None,
    ):
        self.config = (config or OptimizationConfig()).validate()
        if isinstance(initial, DimensionCollection):
            # The engine owns its dimensions; callers keep their own copy
            self.dimensions = initial.clone()
        else:
            self.dimensions = DimensionCollection(initial)
        self.selector = selector or NeighborSelector(max_neighbors=self.config.max_neighbors)
        self.fusion = fusion or FusionEngine(self.config.fusion_strategy)

        self.stall_count = 0
        self.target_states: Dict[str, OptimizerState] = {}
        self.history: List[Dict[str, Any]] = []
        self._improvements = MovingAverage(window_size=10)

    # ------------------------------------------------------------------
    # Dimension management
    # ------------------------------------------------------------------

    def add_dimension(self, name: str, value: Union[Value, Number], **attrs) -> Dimension:
        """Insert a dimension; an existing name is overwritten."""
        return self.dimensions.add_dimension(name, value, **attrs)

    def remove_dimension(self, name: str) -> Dimension:
        removed = self.dimensions.remove_dimension(name)
        self._forget([name])
        return removed

    def get_value(self, name: str) -> Value:
        return self.dimensions.get_value(name)

    def names(self) -> List[str]:
        return self.dimensions.names()

    def __len__(self) -> int:
        return len(self.dimensions)

    def __contains__(self, name: str) -> bool:
        return name in self.dimensions

    def _forget(self, names: List[str]) -> None:
        for dim in self.dimensions:
            dim.forget(names)
        for key in list(self.target_states):
            if key.split('@', 1)[0] in names:
                del self.target_states[key]

    def pruning_threshold(self, config: OptimizationConfig = None) -> float:
        """Current pruning threshold; rises with every consecutive stall."""
        cfg = config or self.config
        threshold = cfg.base_pruning_threshold * cfg.pruning_threshold_multiplier ** self.stall_count
        return min(1.0, threshold)

    def prune_stale(self, options: Options = None) -> List[str]:
        """Remove every dimension whose pheromone is at or below the threshold."""
        threshold = self.pruning_threshold(self._resolve(options))
        stale = [d.name for d in self.dimensions if d.pheromone <= threshold]
        for name in stale:
            self.dimensions.remove_dimension(name)
        if stale:
            self._forget(stale)
            logger.info(f"Pruned {len(stale)} dimension(s) at threshold {threshold:.4f}: {stale}")
        return stale

    def auto_expand(self, criterion: AutoExpandConfig) -> List[str]:
        """Add default-valued dimensions until the size cap is reached."""
        if not criterion.enabled:
            return []
        criterion.validate()
        added = []
        index = 0
        while len(self.dimensions) < criterion.max_dimensions:
            name = f"{criterion.name_prefix}{index}"
            index += 1
            if name in self.dimensions:
                continue
            self.dimensions.add_dimension(name, Scalar(criterion.default_value))
            added.append(name)
        if added:
            logger.info(f"Auto-expanded with {len(added)} dimension(s) after {self.stall_count} stalls")
        return added

    def _maybe_expand(self, cfg: OptimizationConfig) -> List[str]:
        if cfg.auto_expand.enabled and self.stall_count >= cfg.auto_expand.trigger_stalls:
            return self.auto_expand(cfg.auto_expand)
        return []

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def magnitude(self) -> float:
        return self.dimensions.magnitude()

    def compare_magnitude(self, other: Union['OptimizationEngine', DimensionCollection]) -> int:
        return self.dimensions.compare_magnitude(self._collection_of(other))

    def intensity_at(self, name: str, wavelength: float, default: float = 0.0,
                     max_neighbors: Optional[int] = None) -> float:
        """
        Intensity of a spectrum dimension at a wavelength.

        Falls back to the selector-weighted mean of eligible neighbor spectra
        that carry the wavelength, then to default.
        """
        dim = self.dimensions.get(name)
        if not isinstance(dim.value, Spectrum):
            raise TypeMismatchError(dim.value.kind, "spectrum", "intensity_at")
        if dim.value.has_wavelength(wavelength):
            return dim.value.intensity_at(wavelength)

        readings, weights = [], []
        for neighbor in self.selector.rank(dim, self.dimensions, max_neighbors=max_neighbors):
            value = neighbor.dimension.value
            if isinstance(value, Spectrum) and value.has_wavelength(wavelength):
                readings.append(value.intensity_at(wavelength))
                weights.append(neighbor.weight)
        if readings:
            return float(np.average(readings, weights=weights))
        logger.debug(f"No intensity for {name!r} at {wavelength}; using default {default}")
        return default

    def summary(self) -> Dict[str, Any]:
        """Get engine statistics."""
        pheromones = [d.pheromone for d in self.dimensions]
        stats = {
            'n_dimensions': len(self.dimensions),
            'stall_count': self.stall_count,
            'pruning_threshold': self.pruning_threshold(),
            'magnitude': self.magnitude(),
            'runs': len(self.history),
            'recent_improvement': self._improvements.get(),
            'target_states': {k: s.value for k, s in self.target_states.items()},
        }
        if pheromones:
            stats.update({
                'mean_pheromone': float(np.mean(pheromones)),
                'min_pheromone': min(pheromones),
                'max_pheromone': max(pheromones),
            })
        return stats

    # ------------------------------------------------------------------
    # Collection algebra (always returns a new engine)
    # ------------------------------------------------------------------

    @staticmethod
    def _collection_of(other) -> DimensionCollection:
        return other.dimensions if isinstance(other, OptimizationEngine) else other

    def _spawn(self, collection: DimensionCollection) -> 'OptimizationEngine':
        return OptimizationEngine(
            collection, config=self.config.clone(), selector=self.selector, fusion=self.fusion
        )

    def add(self, other) -> 'OptimizationEngine':
        return self._spawn(self.dimensions.add(self._collection_of(other)))

    def subtract(self, other) -> 'OptimizationEngine':
        return self._spawn(self.dimensions.subtract(self._collection_of(other)))

    def multiply(self, other) -> 'OptimizationEngine':
        return self._spawn(self.dimensions.multiply(self._collection_of(other)))

    def divide(self, other) -> 'OptimizationEngine':
        return self._spawn(self.dimensions.divide(self._collection_of(other)))

    def scale(self, factor: float) -> 'OptimizationEngine':
        return self._spawn(self.dimensions.scale(factor))

    # ------------------------------------------------------------------
    # Pheromones
    # ------------------------------------------------------------------

    def _resolve(self, options: Options) -> OptimizationConfig:
        if options is None:
            return self.config
        if isinstance(options, OptimizationConfig):
            return options.clone().validate()
        return self.config.merged(options)

    @staticmethod
    def _deposit(boosts, trail_boosts, target: str, neighbors: List[Neighbor],
                 improvement: float, cfg: OptimizationConfig) -> None:
        boost = cfg.exploration_boost * improvement
        boosts[target] = boosts.get(target, 0.0) + boost
        trail = trail_boosts.setdefault(target, {})
        for n in neighbors:
            boosts[n.name] = boosts.get(n.name, 0.0) + boost
            trail[n.name] = trail.get(n.name, 0.0) + cfg.reward_multiplier * improvement * n.weight

    def _update_pheromones(self, names, boosts, trail_boosts, cfg: OptimizationConfig) -> None:
        """Decay then reinforce pheromone and trail levels, clamped to [0, 1]."""
        keep = 1.0 - cfg.pheromone_decay_rate
        for name in names:
            if name not in self.dimensions:
                continue
            dim = self.dimensions.get(name)
            dim.pheromone = clamp(dim.pheromone * keep + boosts.get(name, 0.0))
            rewards = trail_boosts.get(name, {})
            for neighbor in list(dim.trail) + [n for n in rewards if n not in dim.trail]:
                if neighbor not in self.dimensions:
                    dim.trail.pop(neighbor, None)
                    continue
                dim.trail[neighbor] = clamp(dim.trail.get(neighbor, 0.0) * keep + rewards.get(neighbor, 0.0))

    # ------------------------------------------------------------------
    # Gradient descent on a single target
    # ------------------------------------------------------------------

    @staticmethod
    def _reading(value: Value, wavelength: Optional[float]) -> Optional[float]:
        if isinstance(value, Scalar):
            return value.value
        if isinstance(value, Fractional):
            return value.total
        if isinstance(value, Spectrum) and wavelength is not None and value.has_wavelength(wavelength):
            return value.intensity_at(wavelength)
        return None

    def _read_target(self, dim: Dimension, wavelength: Optional[float], cfg: OptimizationConfig) -> float:
        if isinstance(dim.value, (Scalar, Fractional)):
            return self._reading(dim.value, None)
        if isinstance(dim.value, Spectrum):
            if wavelength is None:
                raise InvalidConfigurationError(f"Spectrum dimension {dim.name!r} needs a target wavelength")
            return self.intensity_at(dim.name, wavelength, max_neighbors=cfg.max_neighbors)
        raise TypeMismatchError(dim.value.kind, "scalar", "optimize")

    def _write_target(self, name: str, wavelength: Optional[float], x: float) -> None:
        value = self.dimensions.get_value(name)
        if isinstance(value, Scalar):
            updated = Scalar(x)
        elif isinstance(value, Fractional):
            updated = Fractional.from_total(x)
        else:
            updated = value.with_intensity(wavelength, x)
        self.dimensions.set_value(name, updated)

    @staticmethod
    def _gradient(cost_fn: CostFunction, x: float, cfg: OptimizationConfig,
                  fx: Optional[float] = None) -> float:
        h = cfg.finite_difference_step
        if cfg.gradient_method == 'central':
            return (cost_fn(x + h) - cost_fn(x - h)) / (2.0 * h)
        if fx is None:
            fx = cost_fn(x)
        return (cost_fn(x + h) - fx) / h

    def optimize(
        self,
        target_key: str,
        cost_fn: CostFunction,
        options: Options = None,
        wavelength: Optional[float] = None,
    ) -> OptimizationResult:
        """
        Descend cost_fn from the current value of one dimension.

        Args:
            target_key: Name of a Scalar, Fractional or Spectrum dimension
            cost_fn: Callable mapping a float to a float cost
            options: OptimizationConfig or dict of overrides for this call
            wavelength: Target key coordinate for Spectrum dimensions

        Returns:
            OptimizationResult; the best value found is written back.
        """
        cfg = self._resolve(options)
        dim = self.dimensions.get(target_key)
        x = stored = self._read_target(dim, wavelength, cfg)
        key = target_key if wavelength is None else f"{target_key}@{wavelength}"
        self.target_states[key] = OptimizerState.IDLE
        if cfg.value_bounds is not None:
            x = clamp(x, *cfg.value_bounds)

        # Neighbors are ranked once per run; their readings stay fixed.
        # Only neighbors of the same variant contribute gradient samples.
        neighbors = self.selector.rank(dim, self.dimensions, max_neighbors=cfg.max_neighbors)
        helpers = []
        for n in neighbors:
            if type(n.dimension.value) is not type(dim.value):
                continue
            reading = self._reading(n.dimension.value, wavelength)
            if reading is not None:
                helpers.append((n, reading))
        helper_weight = sum(n.weight for n, _ in helpers)

        started = time.monotonic()
        initial_x = best_x = x
        initial_cost = best_cost = float(cost_fn(x))
        cost_history = [best_cost]
        lr = cfg.learning_rate
        steps = 0
        slow_steps = 0
        stop = StopReason.MAX_STEPS

        try:
            while steps < cfg.max_steps:
                if cfg.time_budget is not None and time.monotonic() - started >= cfg.time_budget:
                    stop = StopReason.TIME_BUDGET
                    break
                steps += 1
                self.target_states[key] = OptimizerState.EVALUATING

                grad = self._gradient(cost_fn, best_x, cfg, best_cost)
                if helpers and cfg.collaboration_weight > 0 and helper_weight > 0:
                    shared = sum(n.weight * self._gradient(cost_fn, r, cfg) for n, r in helpers) / helper_weight
                    c = cfg.collaboration_weight
                    grad = (1.0 - c) * grad + c * shared

                candidate = best_x - lr * grad
                if cfg.value_bounds is not None:
                    candidate = clamp(candidate, *cfg.value_bounds)
                cost = float(cost_fn(candidate))
                improvement = best_cost - cost

                if improvement > 0:
                    self.target_states[key] = OptimizerState.IMPROVED
                    best_x, best_cost = candidate, cost
                    self._write_target(target_key, wavelength, best_x)
                    stored = best_x
                    boosts, trail_boosts = {}, {}
                    touched = [n for n, _ in helpers]
                    self._deposit(boosts, trail_boosts, target_key, touched, improvement, cfg)
                    self._update_pheromones([target_key] + [n.name for n in touched],
                                            boosts, trail_boosts, cfg)
                    self.stall_count = 0
                else:
                    self.target_states[key] = OptimizerState.STALLED
                    improvement = 0.0
                    self.stall_count += 1
                    lr *= 0.5  # Back off; the rejected step overshot

                cost_history.append(best_cost)
                self._improvements.update(improvement)
                logger.debug(f"{key} step {steps}: x={best_x:.6g} cost={best_cost:.6g} grad={grad:.4g}")

                slow_steps = slow_steps + 1 if improvement < cfg.progress_threshold else 0
                if slow_steps >= cfg.stall_patience:
                    self.target_states[key] = OptimizerState.CONVERGED
                    stop = StopReason.CONVERGED
                    break
        except Exception:
            if best_x != stored:
                self._write_target(target_key, wavelength, best_x)
            logger.warning(f"Cost function failed on {key} at step {steps}; restored x={best_x:.6g}")
            raise

        # Untouched targets keep their stored representation
        if best_x != stored:
            self._write_target(target_key, wavelength, best_x)
        expanded = self._maybe_expand(cfg)

        result = OptimizationResult(
            target=target_key,
            wavelength=wavelength,
            initial_value=initial_x,
            best_value=best_x,
            initial_cost=initial_cost,
            best_cost=best_cost,
            steps=steps,
            stop_reason=stop,
            cost_history=cost_history,
            expanded=expanded,
        )
        self.history.append(result.to_dict())
        logger.info(
            f"Optimized {key}: cost {initial_cost:.6g} -> {best_cost:.6g} in {steps} steps "
            f"({stop.value}, {format_time(time.monotonic() - started)})"
        )
        return result

    # ------------------------------------------------------------------
    # Pheromone-driven fusion pass
    # ------------------------------------------------------------------

    def evolve(
        self,
        cost_fn: Optional[CostFunction] = None,
        strategy: Optional[FusionStrategy] = None,
        options: Options = None,
    ) -> EvolveReport:
        """
        One fusion pass over all Scalar dimensions, in insertion order.

        Neighbors are ranked against a snapshot taken before the pass, so
        no dimension sees a partially-updated neighbor. With a cost
        function a proposal is kept only if it lowers the cost; without
        one every proposal is applied.
        """
        cfg = self._resolve(options)
        strategy = strategy or cfg.fusion_strategy
        snapshot = self.dimensions.clone()
        report = EvolveReport()
        boosts: Dict[str, float] = {}
        trail_boosts: Dict[str, Dict[str, float]] = {}

        for dim in snapshot:
            if not isinstance(dim.value, Scalar):
                continue
            neighbors = self.selector.rank(dim, snapshot, max_neighbors=cfg.max_neighbors)
            proposal = self.fusion.fuse(dim, neighbors, strategy)
            if proposal == dim.value:
                continue

            if cost_fn is not None:
                improvement = float(cost_fn(dim.value.value)) - float(cost_fn(proposal.value))
                if improvement <= 0:
                    continue
                report.improved.append(dim.name)
                report.total_improvement += improvement
                self._deposit(boosts, trail_boosts, dim.name, neighbors, improvement, cfg)

            self.dimensions.set_value(dim.name, proposal)
            report.updated.append(dim.name)

        self._update_pheromones(self.dimensions.names(), boosts, trail_boosts, cfg)

        if cost_fn is not None:
            if report.improved:
                self.stall_count = 0
            else:
                self.stall_count += 1
            self._improvements.update(report.total_improvement)

        report.stall_count = self.stall_count
        report.expanded = self._maybe_expand(cfg)
        logger.debug(
            f"Evolve pass: {len(report.updated)} updated, {len(report.improved)} improved, "
            f"stall_count={self.stall_count}"
        )
        return report

"""
Typed Values for Optimization Dimensions

A Value is exactly one of four immutable variants:
- Scalar: a single float
- Fractional: a whole + fractional pair read as their sum
- Spectrum: wavelength -> intensity mapping (keys unique, unordered)
- Nested: an ordered tuple of child Values

Binary operations are only defined between values of the same variant;
anything else raises TypeMismatchError. Nothing is coerced implicitly.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Tuple, Union

import numpy as np

from .errors import DivisionByZeroError, KeyNotFoundError, TypeMismatchError


Number = Union[int, float]


class Value(ABC):
    """Base class for the closed set of value variants."""

    kind: str = "value"

    def _require_same(self, other: Any, operation: str) -> None:
        if type(other) is not type(self):
            raise TypeMismatchError(self.kind, getattr(other, 'kind', type(other).__name__), operation)

    def distance_to(self, other: 'Value') -> float:
        """Distance to another value of the same variant."""
        self._require_same(other, "distance_to")
        return self._distance(other)

    def combine(self, other: 'Value', weight: float) -> 'Value':
        """
        Weighted blend: self * (1 - weight) + other * weight.

        Args:
            other: Value of the same variant
            weight: Share given to other, in [0, 1]
        """
        self._require_same(other, "combine")
        if not 0.0 <= weight <= 1.0:
            raise ValueError(f"combine weight must be in [0, 1], got {weight}")
        return self._combine(other, weight)

    def add(self, other: 'Value') -> 'Value':
        self._require_same(other, "add")
        return self._elementwise(other, "add")

    def subtract(self, other: 'Value') -> 'Value':
        self._require_same(other, "subtract")
        return self._elementwise(other, "subtract")

    def multiply(self, other: 'Value') -> 'Value':
        self._require_same(other, "multiply")
        return self._elementwise(other, "multiply")

    def divide(self, other: 'Value') -> 'Value':
        """Elementwise division; raises DivisionByZeroError on an exact zero divisor."""
        self._require_same(other, "divide")
        return self._elementwise(other, "divide")

    @abstractmethod
    def _distance(self, other: 'Value') -> float:
        pass

    @abstractmethod
    def _combine(self, other: 'Value', weight: float) -> 'Value':
        pass

    @abstractmethod
    def _elementwise(self, other: 'Value', operation: str) -> 'Value':
        pass

    @abstractmethod
    def scale(self, factor: float) -> 'Value':
        pass

    @abstractmethod
    def magnitude(self) -> float:
        pass

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        pass


def _apply(a: float, b: float, operation: str) -> float:
    if operation == "add":
        return a + b
    if operation == "subtract":
        return a - b
    if operation == "multiply":
        return a * b
    if operation == "divide":
        if b == 0:
            raise DivisionByZeroError(f"Division by zero scalar ({a} / {b})")
        return a / b
    raise ValueError(f"Unknown operation: {operation}")


@dataclass(frozen=True)
class Scalar(Value):
    """A single real number."""
    value: float

    kind = "scalar"

    def _distance(self, other: 'Scalar') -> float:
        return abs(self.value - other.value)

    def _combine(self, other: 'Scalar', weight: float) -> 'Scalar':
        return Scalar(self.value * (1.0 - weight) + other.value * weight)

    def _elementwise(self, other: 'Scalar', operation: str) -> 'Scalar':
        return Scalar(_apply(self.value, other.value, operation))

    def scale(self, factor: float) -> 'Scalar':
        return Scalar(self.value * factor)

    def magnitude(self) -> float:
        return abs(self.value)

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind, 'value': self.value}


@dataclass(frozen=True)
class Fractional(Value):
    """Whole + fractional pair; numerically equal to whole + fractional."""
    whole: float
    fractional: float

    kind = "fractional"

    @property
    def total(self) -> float:
        return self.whole + self.fractional

    @classmethod
    def from_total(cls, total: float) -> 'Fractional':
        frac, whole = math.modf(total)
        return cls(whole, frac)

    def _distance(self, other: 'Fractional') -> float:
        return float(np.hypot(self.whole - other.whole, self.fractional - other.fractional))

    def _combine(self, other: 'Fractional', weight: float) -> 'Fractional':
        return Fractional(
            self.whole * (1.0 - weight) + other.whole * weight,
            self.fractional * (1.0 - weight) + other.fractional * weight,
        )

    def _elementwise(self, other: 'Fractional', operation: str) -> 'Fractional':
        if operation in ("add", "subtract"):
            return Fractional(
                _apply(self.whole, other.whole, operation),
                _apply(self.fractional, other.fractional, operation),
            )
        # Products do not distribute over the split; work on the totals
        return Fractional.from_total(_apply(self.total, other.total, operation))

    def scale(self, factor: float) -> 'Fractional':
        return Fractional(self.whole * factor, self.fractional * factor)

    def magnitude(self) -> float:
        return abs(self.total)

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind, 'whole': self.whole, 'fractional': self.fractional}


@dataclass(frozen=True)
class Spectrum(Value):
    """Mapping of wavelength -> intensity."""
    intensities: Mapping[float, float] = field(default_factory=dict)

    kind = "spectrum"

    def __post_init__(self):
        # Private copy so callers cannot mutate the mapping afterwards
        object.__setattr__(
            self, 'intensities',
            {float(k): float(v) for k, v in dict(self.intensities).items()},
        )

    def __hash__(self):
        return hash(frozenset(self.intensities.items()))

    def has_wavelength(self, wavelength: float) -> bool:
        return float(wavelength) in self.intensities

    def intensity_at(self, wavelength: float) -> float:
        """Exact-match lookup; raises KeyNotFoundError when absent."""
        try:
            return self.intensities[float(wavelength)]
        except KeyError:
            raise KeyNotFoundError(wavelength, "spectrum") from None

    def with_intensity(self, wavelength: float, intensity: float) -> 'Spectrum':
        updated = dict(self.intensities)
        updated[float(wavelength)] = float(intensity)
        return Spectrum(updated)

    def _matched(self, other: 'Spectrum'):
        return [w for w in self.intensities if w in other.intensities]

    def _distance(self, other: 'Spectrum') -> float:
        matched = self._matched(other)
        if not matched:
            return 0.0
        a = np.array([self.intensities[w] for w in matched])
        b = np.array([other.intensities[w] for w in matched])
        return float(np.linalg.norm(a - b))

    def _combine(self, other: 'Spectrum', weight: float) -> 'Spectrum':
        blended = dict(self.intensities)
        for w, intensity in other.intensities.items():
            if w in blended:
                blended[w] = blended[w] * (1.0 - weight) + intensity * weight
            else:
                blended[w] = intensity
        return Spectrum(blended)

    def _elementwise(self, other: 'Spectrum', operation: str) -> 'Spectrum':
        result = dict(self.intensities)
        if operation in ("add", "subtract"):
            for w, intensity in other.intensities.items():
                result[w] = _apply(result.get(w, 0.0), intensity, operation)
        else:
            for w in self._matched(other):
                result[w] = _apply(self.intensities[w], other.intensities[w], operation)
            for w, intensity in other.intensities.items():
                result.setdefault(w, intensity)
        return Spectrum(result)

    def scale(self, factor: float) -> 'Spectrum':
        return Spectrum({w: i * factor for w, i in self.intensities.items()})

    def magnitude(self) -> float:
        if not self.intensities:
            return 0.0
        return float(np.linalg.norm(list(self.intensities.values())))

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind, 'intensities': dict(self.intensities)}


@dataclass(frozen=True)
class Nested(Value):
    """Ordered sequence of child values."""
    children: Tuple[Value, ...] = ()

    kind = "nested"

    def __post_init__(self):
        object.__setattr__(self, 'children', tuple(as_value(c) for c in self.children))

    def __len__(self) -> int:
        return len(self.children)

    def _pairs(self, other: 'Nested', operation: str):
        pairs = list(zip(self.children, other.children))
        for a, b in pairs:
            a._require_same(b, operation)
        return pairs

    def _distance(self, other: 'Nested') -> float:
        parts = [a._distance(b) for a, b in self._pairs(other, "distance_to")]
        return float(np.linalg.norm(parts)) if parts else 0.0

    def _combine(self, other: 'Nested', weight: float) -> 'Nested':
        return Nested(tuple(a._combine(b, weight) for a, b in self._pairs(other, "combine")))

    def _elementwise(self, other: 'Nested', operation: str) -> 'Nested':
        if len(self.children) != len(other.children):
            raise TypeMismatchError(
                f"nested[{len(self.children)}]", f"nested[{len(other.children)}]", operation
            )
        return Nested(tuple(a._elementwise(b, operation) for a, b in self._pairs(other, operation)))

    def scale(self, factor: float) -> 'Nested':
        return Nested(tuple(c.scale(factor) for c in self.children))

    def magnitude(self) -> float:
        if not self.children:
            return 0.0
        return float(np.linalg.norm([c.magnitude() for c in self.children]))

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind, 'children': [c.to_dict() for c in self.children]}


def as_value(x: Union[Value, Number]) -> Value:
    """Pass Values through and wrap plain numbers as Scalar."""
    if isinstance(x, Value):
        return x
    if isinstance(x, (int, float, np.integer, np.floating)) and not isinstance(x, bool):
        return Scalar(float(x))
    raise TypeMismatchError("value", type(x).__name__, "as_value")


_FROM_DICT: Dict[str, Callable[[Dict[str, Any]], Value]] = {
    Scalar.kind: lambda d: Scalar(d['value']),
    Fractional.kind: lambda d: Fractional(d['whole'], d['fractional']),
    Spectrum.kind: lambda d: Spectrum({float(k): v for k, v in d['intensities'].items()}),
    Nested.kind: lambda d: Nested(tuple(value_from_dict(c) for c in d['children'])),
}


def value_from_dict(d: Dict[str, Any]) -> Value:
    """Inverse of Value.to_dict()."""
    builder = _FROM_DICT.get(d.get('kind'))
    if builder is None:
        raise ValueError(f"Unknown value kind: {d.get('kind')!r}")
    return builder(d)

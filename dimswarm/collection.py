"""
Dimension Collection

Insertion-ordered mapping of name -> Dimension with collection algebra.
Binary operations require identical key sets and always produce a new
collection; operands are never modified.
"""

import logging
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

import numpy as np

from .dimension import Dimension
from .errors import KeyNotFoundError
from .values import Number, Value, as_value


logger = logging.getLogger(__name__)

MAGNITUDE_TOLERANCE = 1e-12


class DimensionCollection:
    """Container of dimensions keyed by unique name."""

    def __init__(self, initial: Optional[Mapping[str, Union[Value, Number]]] = None):
        self._dimensions: Dict[str, Dimension] = {}
        for name, value in (initial or {}).items():
            self.add_dimension(name, value)

    @classmethod
    def from_dimensions(cls, dimensions) -> 'DimensionCollection':
        collection = cls()
        for dim in dimensions:
            collection._dimensions[dim.name] = dim
        return collection

    # ------------------------------------------------------------------
    # Mapping protocol
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._dimensions)

    def __contains__(self, name: str) -> bool:
        return name in self._dimensions

    def __iter__(self) -> Iterator[Dimension]:
        return iter(list(self._dimensions.values()))

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, DimensionCollection):
            return NotImplemented
        return self.values() == other.values()

    def names(self) -> List[str]:
        return list(self._dimensions)

    def values(self) -> Dict[str, Value]:
        return {name: dim.value for name, dim in self._dimensions.items()}

    def get(self, name: str) -> Dimension:
        try:
            return self._dimensions[name]
        except KeyError:
            raise KeyNotFoundError(name, "collection") from None

    def get_value(self, name: str) -> Value:
        return self.get(name).value

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_dimension(self, name: str, value: Union[Value, Number], **attrs) -> Dimension:
        """
        Insert a dimension, overwriting any existing one with the same name.

        An overwritten name keeps its original position in iteration order.
        """
        if name in self._dimensions:
            logger.debug(f"Overwriting dimension {name!r}")
        dim = Dimension(name=name, value=as_value(value), **attrs)
        self._dimensions[name] = dim
        return dim

    def set_value(self, name: str, value: Value) -> None:
        self.get(name).value = value

    def remove_dimension(self, name: str) -> Dimension:
        try:
            return self._dimensions.pop(name)
        except KeyError:
            raise KeyNotFoundError(name, "collection") from None

    def clone(self) -> 'DimensionCollection':
        return DimensionCollection.from_dimensions(d.clone() for d in self._dimensions.values())

    # ------------------------------------------------------------------
    # Magnitude
    # ------------------------------------------------------------------

    def magnitude(self) -> float:
        """L2 norm over dimension magnitudes."""
        if not self._dimensions:
            return 0.0
        return float(np.linalg.norm([d.value.magnitude() for d in self._dimensions.values()]))

    def compare_magnitude(self, other: 'DimensionCollection') -> int:
        """Return -1, 0 or 1 as self's magnitude is below, equal to, or above other's."""
        a, b = self.magnitude(), other.magnitude()
        if np.isclose(a, b, rtol=MAGNITUDE_TOLERANCE, atol=MAGNITUDE_TOLERANCE):
            return 0
        return 1 if a > b else -1

    # ------------------------------------------------------------------
    # Algebra
    # ------------------------------------------------------------------

    def _check_keys(self, other: 'DimensionCollection', operation: str) -> None:
        missing = set(self._dimensions) ^ set(other._dimensions)
        if missing:
            raise KeyNotFoundError(missing, f"{operation} operands")

    def _binary(self, other: 'DimensionCollection', operation: str) -> 'DimensionCollection':
        self._check_keys(other, operation)
        # Build everything before returning so a failure leaves no partial result
        result = []
        for name, dim in self._dimensions.items():
            new_dim = dim.clone()
            new_dim.value = getattr(dim.value, operation)(other._dimensions[name].value)
            result.append(new_dim)
        return DimensionCollection.from_dimensions(result)

    def add(self, other: 'DimensionCollection') -> 'DimensionCollection':
        return self._binary(other, "add")

    def subtract(self, other: 'DimensionCollection') -> 'DimensionCollection':
        return self._binary(other, "subtract")

    def multiply(self, other: 'DimensionCollection') -> 'DimensionCollection':
        return self._binary(other, "multiply")

    def divide(self, other: 'DimensionCollection') -> 'DimensionCollection':
        """Elementwise divide; any zero divisor fails the whole call."""
        return self._binary(other, "divide")

    def scale(self, factor: float) -> 'DimensionCollection':
        result = []
        for dim in self._dimensions.values():
            new_dim = dim.clone()
            new_dim.value = dim.value.scale(factor)
            result.append(new_dim)
        return DimensionCollection.from_dimensions(result)

    def to_dict(self) -> Dict[str, Any]:
        return {name: dim.to_dict() for name, dim in self._dimensions.items()}

"""
Error taxonomy for the dimension optimization engine.

Each error also derives from the closest builtin so callers can catch
either the library type or the builtin one.
"""


class DimSwarmError(Exception):
    """Base class for all engine errors."""


class TypeMismatchError(DimSwarmError, TypeError):
    """Operation applied to incompatible Value variants."""
    
    def __init__(self, left: str, right: str, operation: str = "operation"):
        self.left = left
        self.right = right
        self.operation = operation
        super().__init__(f"Cannot apply {operation} to {left} and {right}")


class KeyNotFoundError(DimSwarmError, KeyError):
    """Referenced dimension name (or wavelength) is absent."""
    
    def __init__(self, keys, context: str = ""):
        if isinstance(keys, (list, tuple, set, frozenset)):
            self.keys = sorted(keys, key=str)
        else:
            self.keys = [keys]
        self.context = context
        super().__init__(self.keys[0] if len(self.keys) == 1 else self.keys)
    
    def __str__(self) -> str:
        where = f" in {self.context}" if self.context else ""
        return f"Key(s) not found{where}: {self.keys}"


class DivisionByZeroError(DimSwarmError, ZeroDivisionError):
    """Divisor scalar is exactly zero."""


class InvalidConfigurationError(DimSwarmError, ValueError):
    """Out-of-range or unknown configuration option."""

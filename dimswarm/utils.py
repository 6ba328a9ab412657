"""
Utility functions for the dimension optimization engine.
"""

import logging
from typing import List, Optional, Union

from .config import LOG_FORMAT, VERBOSE_LEVELS


def setup_logger(name: str, level: Union[str, int] = 'INFO') -> logging.Logger:
    """
    Setup a logger with consistent formatting.
    
    Args:
        name: Logger name
        level: Logging level name, or a verbosity in VERBOSE_LEVELS
        
    Returns:
        Configured logger
    """
    if isinstance(level, int):
        level = VERBOSE_LEVELS.get(level, 'DEBUG')
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))
    
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    
    return logger


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def format_time(seconds: float) -> str:
    """Format seconds into human-readable time."""
    if seconds < 1:
        return f"{seconds * 1000:.1f}ms"
    elif seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        return f"{seconds / 60:.1f}m"
    else:
        return f"{seconds / 3600:.1f}h"


class MovingAverage:
    """Track moving average of a metric."""
    
    def __init__(self, window_size: int = 10):
        self.window_size = window_size
        self.values: List[float] = []
    
    def update(self, value: float):
        self.values.append(value)
        if len(self.values) > self.window_size:
            self.values.pop(0)
    
    def get(self) -> Optional[float]:
        if not self.values:
            return None
        return sum(self.values) / len(self.values)
    
    def reset(self):
        self.values = []

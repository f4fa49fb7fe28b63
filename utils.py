"""
Small numeric helpers and logging setup shared across modules
"""
import logging
from typing import Iterable, Optional


def clamp(value: float, lower: float, upper: float) -> float:
    """Limit value to the closed range [lower, upper]"""
    return min(upper, max(lower, value))


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    if denominator == 0:
        return default
    return numerator / denominator


def mean(values: Iterable[float], default: float = 0.0) -> float:
    values = list(values)
    return sum(values) / len(values) if values else default


def to_percent(fraction: float) -> float:
    return fraction * 100.0


def configure_logging(level: int = logging.INFO,
                      handlers: Optional[Iterable[logging.Handler]] = None) -> None:
    """Configure root logging for applications embedding the analyzer.

    Args:
        level: Minimum level to emit
        handlers: Optional handlers to install instead of the default stream handler
    """
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=list(handlers) if handlers is not None else None,
    )

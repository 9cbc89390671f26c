"""Derived price metrics."""

from .derived import (
    compute_metrics,
    format_percentage,
    format_price,
    latest_close,
    latest_closing_price,
    percent_change,
)

__all__ = [
    "compute_metrics",
    "format_percentage",
    "format_price",
    "latest_close",
    "latest_closing_price",
    "percent_change",
]

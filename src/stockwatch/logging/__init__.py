"""Logging helpers."""

from .logger import HumanLogger
from .report import generate_chart_report

__all__ = ["HumanLogger", "generate_chart_report"]

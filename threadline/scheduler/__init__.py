"""Periodic triggers for background polling."""

from .ticker import IntervalTicker, Ticker

__all__ = ["IntervalTicker", "Ticker"]

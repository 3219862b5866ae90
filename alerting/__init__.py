"""Metric anomaly alerting — threshold detection with cooldown-deduplicated push alerts."""

__version__ = "0.1.0"

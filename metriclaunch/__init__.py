"""Metric views, periodic export and telemetry pipeline configuration."""

__version__ = "0.1.0"
__all__ = ["clause", "config", "metrics", "periodic", "sdkinstrument", "views"]
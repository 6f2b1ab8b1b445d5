"""Turn-based territorial conquest engine."""

__version__ = "0.1.0"

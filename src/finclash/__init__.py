"""FinClash market data cache and portfolio engine."""

__version__ = "0.1.0"

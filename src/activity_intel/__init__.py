"""Activity intelligence: money-movement analytics over account activity."""

__version__ = "0.1.0"

"""Portfolio tracking with tiered identifier and price resolution."""

__version__ = "0.1.0"

"""Restaurant customer-flow dashboard: charts and flow-arc maps per location."""

__version__ = "0.1.0"

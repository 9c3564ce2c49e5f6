"""Calendar-based daily task tracker."""

__version__ = "0.3.0"

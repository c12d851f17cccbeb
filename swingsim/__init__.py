"""Buy-low / sell-high trading simulator driven by a synthetic price feed."""

__version__ = "0.1.0"

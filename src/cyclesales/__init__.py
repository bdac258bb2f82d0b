"""Sales-cycle analytics: normalization, segmentation, basket analysis and forecasts."""

__version__ = "0.1.0"

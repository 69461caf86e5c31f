"""Customer RFM audit: features, feasibility, segments and priority lists."""

__version__ = "0.1.0"

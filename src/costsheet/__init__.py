"""costsheet - construction budget sheet import pipeline."""

__version__ = "0.1.0"

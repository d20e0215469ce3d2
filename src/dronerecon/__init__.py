"""dronerecon: drone video to COLMAP-style dataset for Gaussian splatting."""

__version__ = "0.1.0"

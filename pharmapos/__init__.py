"""PharmaPOS: pharmacy inventory and point-of-sale service."""

__version__ = "1.0.0"

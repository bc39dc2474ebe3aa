"""langfield — n-gram language identification for field values."""

__version__ = "0.1.0"

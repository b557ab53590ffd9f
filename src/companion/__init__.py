"""Runtime core for the Companion assistant panel."""

__version__ = "0.1.0"

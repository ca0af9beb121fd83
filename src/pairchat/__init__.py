"""pairchat - two-party messaging with a resilient local message cache."""

__version__ = "0.1.0"

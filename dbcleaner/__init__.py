"""dbcleaner: reclaim fragmented identifier space in a primary-key column."""

__version__ = "0.1.0"

"""bugshelf - bug tracker schema bootstrap and closure-table comments."""

__version__ = "0.1.0"

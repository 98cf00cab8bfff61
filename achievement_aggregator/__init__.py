"""Read-through aggregation of Steam owned games and achievements."""

__version__ = "0.1.0"

"""Group expense balances, debt simplification and settlement requests."""

__version__ = "0.1.0"

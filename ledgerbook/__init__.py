"""Double-entry bookkeeping ledger for multi-company accounting."""

__version__ = "1.0.0"

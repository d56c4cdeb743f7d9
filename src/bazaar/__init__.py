"""bazaar: a minimal marketplace ledger."""

__version__ = "0.1.0"

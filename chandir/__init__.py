"""Channel directory core: weight scoring, like ledger, two-tier cache and rate limiting."""

__version__ = "0.1.0"

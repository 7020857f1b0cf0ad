"""Clustered job store backed by a versioned document store."""

__version__ = "0.3.0"

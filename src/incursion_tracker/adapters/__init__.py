"""Adapters connecting the reconciliation engine to external systems."""

"""Persisted favorite locations."""

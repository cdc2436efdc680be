"""Upstream clients, decoding and forecast alignment."""

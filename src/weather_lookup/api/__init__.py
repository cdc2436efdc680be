"""HTTP API for the weather lookup service."""

"""REST API for the pool."""

"""HTTP API for maintenance operations."""

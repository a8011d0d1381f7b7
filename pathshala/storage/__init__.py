"""Object storage uploads."""

"""Domain policies shared across services."""

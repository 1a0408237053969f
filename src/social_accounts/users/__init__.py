"""User queries and lifecycle operations."""

"""Core utilities shared by every layer (errors, identity, formatting)."""

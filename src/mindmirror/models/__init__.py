"""Domain dataclasses and boundary (pydantic) models."""

"""Entities, value objects and enums of the matching domain."""

"""Utility helpers shared across shortsfeed modules."""

from shortsfeed.utils.duration import is_parseable_duration, parse_duration

__all__ = ["is_parseable_duration", "parse_duration"]

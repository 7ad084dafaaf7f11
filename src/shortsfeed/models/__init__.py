"""Pydantic models for channels, shorts, API payloads and run results."""

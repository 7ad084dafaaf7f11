"""HTTP surface for the shorts feed."""

from shortsfeed.api.app import create_app

__all__ = ["create_app"]

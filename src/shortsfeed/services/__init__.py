"""Service layer for shortsfeed: ingestion pipeline, persistence gateway and feed."""

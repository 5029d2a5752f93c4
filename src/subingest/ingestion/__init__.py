"""Ingestion package: SRT parsing, episode identity resolution, directory aggregation."""

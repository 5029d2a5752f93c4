"""subingest: subtitle transcript ingestion into a normalized relational store."""

__version__ = "0.1.0"

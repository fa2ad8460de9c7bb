"""Catalog bulk ingestion service.

Ingests manifest items with their media into the catalog store and an
S3-compatible bucket, and publishes scheduled records on time.
"""

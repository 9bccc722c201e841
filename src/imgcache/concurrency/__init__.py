"""Concurrency — bounded async pool for batch ingestion."""

from imgcache.concurrency.pool import IngestPool

__all__ = ["IngestPool"]

"""Collector — search capability and the collect stage."""

from insider.collector.github import GitHubSearchClient, SearchFetcher, record_from_item
from insider.collector.stage import fetch_batch, run_collection

__all__ = [
    "GitHubSearchClient",
    "SearchFetcher",
    "record_from_item",
    "fetch_batch",
    "run_collection",
]

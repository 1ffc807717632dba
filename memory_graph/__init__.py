"""
Memory Graph - a domain-partitioned knowledge store.

Memories are short text nodes linked by typed, weighted relationships and
recalled by recency, relationship traversal, path, tag or content search.
"""

__version__ = "1.0.0"

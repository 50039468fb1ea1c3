"""
Metadata caching package.

Holds the expiring in-memory cache used to memoize responses from the
external metadata provider, and the read-through loader that sits between
request handlers and the provider.

Modules of interest:
- metadata_cache: MetadataCache, CacheEntry and canonical key construction.
- loader: MetadataLoader, cache-first fetching with timeout handling.
"""

from .metadata_cache import CacheEntry, MetadataCache, make_key
from .loader import MetadataLoader

__all__ = ["CacheEntry", "MetadataCache", "MetadataLoader", "make_key"]

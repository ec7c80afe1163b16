"""
PGN caching package.

In-memory, per-process cache of classified file lists keyed by level,
plus the background prefetcher that warms it. Entries are replaced
whole and invalidated explicitly through the admin endpoint.
"""

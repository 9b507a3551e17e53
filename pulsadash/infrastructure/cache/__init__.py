"""Caching Implementations.

Provides the persistent key-value stores (in-memory and diskcache-backed)
and the paginated list cache built on top of them.
Bounded Context: Cache Management
"""

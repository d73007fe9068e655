"""Persistence Implementations.

Concrete KeyValueStore backed by diskcache.
Bounded Context: State Persistence
"""

"""API Resilience Implementations.

Contains the retrying HTTP transport, backoff/jitter helpers and the
per-caller sliding-window rate limiter.
Bounded Context: API Resilience
"""

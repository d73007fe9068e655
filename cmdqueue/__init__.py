"""cmdqueue: client for a queue-backed remote command execution service.

Submits commands to the remote queue, polls them to completion with adaptive
backoff, retries transient failures and applies a per-caller rate limit.
"""

__version__ = "0.1.0"

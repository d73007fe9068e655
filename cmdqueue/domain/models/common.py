"""Defines common Value Objects used across the command execution contexts.

These objects represent simple values like caller identities, request ids
and command text, plus the dict shapes returned to callers.
"""

from typing import Any, Dict, List, NewType, Optional, TypedDict

# === Core Value Objects ===

CommandText = NewType("CommandText", str)     # Literal command sent to the remote service
RequestId = NewType("RequestId", str)         # Handle assigned by the remote queue
CallerId = NewType("CallerId", str)           # Key for rate-limit usage tracking
StorageKey = NewType("StorageKey", str)       # Key in the key-value persistence store
TimestampMs = NewType("TimestampMs", int)     # Milliseconds since epoch

# --- Structured Data ---

class CommandOutcome(TypedDict):
    """Normalized success shape returned by the execution facade."""
    success: bool
    data: Any
    message: str

class ErrorResponse(TypedDict, total=False):
    """Structured error shape rendered for callers (CLI, UIs)."""
    success: bool
    error: str
    message: str
    troubleshooting: List[str]
    retryAfter: int
    details: Dict[str, Any]

class RateLimitRecord(TypedDict):
    """Persisted rate-limit usage for one caller."""
    caller_id: CallerId
    request_timestamps: List[TimestampMs]

class FileData(TypedDict, total=False):
    """Optional file payload forwarded with a submitted command."""
    filename: str
    content: str
    encoding: Optional[str]

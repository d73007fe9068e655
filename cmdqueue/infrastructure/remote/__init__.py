"""Remote Command Service Adapter.

Client for the queue-backed command execution API and helpers for
interpreting its result payloads.
Bounded Context: Remote Execution
"""

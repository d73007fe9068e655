"""Domain Events for remote command execution.

Events double as structured log payloads: each one is rendered as the
context object of a log line.
"""

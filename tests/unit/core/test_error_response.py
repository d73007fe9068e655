from cmdqueue.core.error_response import error_response, success_response
from cmdqueue.domain.errors import (
    CommandTimeoutError,
    ConfigurationError,
    QueueFullError,
    RateLimitExceededError,
    RemoteConnectionError,
)

def test_rate_limit_error_response():
    exc = RateLimitExceededError("Rate limit exceeded", retry_after=42, limit_type="minute", remaining=0)
    response = error_response(exc)
    assert response['success'] is False
    assert response['error'] == "RATE_LIMIT_MINUTE"
    assert response['retryAfter'] == 42
    assert response['details']['rate_limited'] is True
    assert response['troubleshooting']

def test_hour_limit_code():
    exc = RateLimitExceededError("Rate limit exceeded", retry_after=600, limit_type="hour")
    assert error_response(exc)['error'] == "RATE_LIMIT_HOUR"

def test_queue_full_carries_retry_after():
    response = error_response(QueueFullError("Queue full", status_code=503, retry_after=10))
    assert response['error'] == "REMOTE_QUEUE_FULL"
    assert response['retryAfter'] == 10

def test_timeout_details():
    response = error_response(CommandTimeoutError("timed out", request_id="req-1", attempts=60))
    assert response['error'] == "REMOTE_TIMEOUT"
    assert response['details'] == {'request_id': 'req-1', 'attempts': 60}
    assert 'retryAfter' not in response

def test_simple_errors():
    assert error_response(ConfigurationError("not configured"))['error'] == "REMOTE_NOT_CONFIGURED"
    assert error_response(RemoteConnectionError("down"))['error'] == "CONNECTION_FAILED"

def test_unexpected_exception_is_internal_and_sanitized():
    response = error_response(ValueError("boom with Bearer abcdef"))
    assert response['error'] == "INTERNAL_ERROR"
    assert "abcdef" not in response['message']
    assert 'details' not in response

def test_success_response():
    assert success_response({"a": 1}, "ok") == {'success': True, 'data': {"a": 1}, 'message': "ok"}
    assert success_response() == {'success': True, 'data': None, 'message': "Command executed successfully"}

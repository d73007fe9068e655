import httpx
import pytest

from cmdqueue.infrastructure.resilience.http_retry import RetryingTransport, RetryPolicy

URL = "https://commander.example.com/api/v2/status/r1"

def make_transport(handler, sleep, policy=None):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RetryingTransport(client=client, policy=policy or RetryPolicy(), sleep=sleep, rand=lambda: 0.0)

@pytest.mark.asyncio
async def test_success_needs_single_attempt(recorded_sleep):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"ok": True})

    transport = make_transport(handler, recorded_sleep)
    response = await transport.send(URL, {'method': 'GET', 'headers': {'api-key': 'k'}})

    assert response.status_code == 200
    assert len(calls) == 1
    assert calls[0].headers['api-key'] == 'k'
    assert recorded_sleep.delays == []

@pytest.mark.asyncio
async def test_persistent_503_returns_last_response_after_budget(recorded_sleep):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503)

    transport = make_transport(handler, recorded_sleep)
    response = await transport.send(URL)

    assert response.status_code == 503
    assert len(calls) == 4
    assert recorded_sleep.delays == [1.0, 2.0, 4.0]
    assert recorded_sleep.delays == sorted(recorded_sleep.delays)

@pytest.mark.asyncio
async def test_retry_after_header_overrides_backoff(recorded_sleep):
    responses = iter([httpx.Response(429, headers={'Retry-After': '3'}), httpx.Response(200, json={})])

    transport = make_transport(lambda request: next(responses), recorded_sleep)
    response = await transport.send(URL)

    assert response.status_code == 200
    assert recorded_sleep.delays == [3.0]

@pytest.mark.asyncio
async def test_non_retryable_status_is_returned_immediately(recorded_sleep):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(404)

    transport = make_transport(handler, recorded_sleep)
    response = await transport.send(URL)

    assert response.status_code == 404
    assert len(calls) == 1
    assert recorded_sleep.delays == []

@pytest.mark.asyncio
async def test_network_error_recovers(recorded_sleep):
    attempts = {'n': 0}

    def handler(request):
        attempts['n'] += 1
        if attempts['n'] < 3:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={})

    transport = make_transport(handler, recorded_sleep)
    response = await transport.send(URL)

    assert response.status_code == 200
    assert attempts['n'] == 3
    assert recorded_sleep.delays == [1.0, 2.0]

@pytest.mark.asyncio
async def test_network_error_reraised_after_budget(recorded_sleep):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    transport = make_transport(handler, recorded_sleep, RetryPolicy(max_retries=1))
    with pytest.raises(httpx.ConnectError):
        await transport.send(URL)
    assert recorded_sleep.delays == [1.0]

@pytest.mark.asyncio
async def test_post_body_and_method_forwarded(recorded_sleep):
    seen = {}

    def handler(request):
        seen['method'] = request.method
        seen['body'] = request.content
        return httpx.Response(200, json={})

    transport = make_transport(handler, recorded_sleep)
    await transport.send(URL, {'method': 'POST', 'json': {'command': 'ls'}})

    assert seen['method'] == 'POST'
    assert b'"command"' in seen['body']

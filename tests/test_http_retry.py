"""
Unit tests for the retrying HTTP layer.
"""

import unittest

import httpx

from chronicler.clients.http import RetryOptions, compute_backoff_delay, fetch_with_retry, is_retryable_status
from chronicler.errors import RetryExhaustedError


class RecordingSleep:
    """Collects requested delays instead of waiting."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


def sequence_transport(statuses):
    """Answer successive requests with the given status codes."""
    calls = []

    def handler(request):
        calls.append(request)
        status = statuses[min(len(calls), len(statuses)) - 1]
        return httpx.Response(status, json={"status": status})

    return httpx.MockTransport(handler), calls


class TestBackoff(unittest.TestCase):
    """Test delay computation and status classification."""

    def test_delay_doubles_until_capped(self):
        options = RetryOptions(attempts=5, base_delay_ms=400, max_delay_ms=2000)
        self.assertEqual(compute_backoff_delay(0, options), 400)
        self.assertEqual(compute_backoff_delay(1, options), 800)
        self.assertEqual(compute_backoff_delay(2, options), 1600)
        self.assertEqual(compute_backoff_delay(3, options), 2000)

    def test_retryable_statuses(self):
        self.assertTrue(is_retryable_status(500))
        self.assertTrue(is_retryable_status(503))
        self.assertTrue(is_retryable_status(429))
        self.assertFalse(is_retryable_status(404))
        self.assertFalse(is_retryable_status(200))


class TestFetchWithRetry(unittest.IsolatedAsyncioTestCase):
    """Test fetch_with_retry against a mocked transport."""

    async def test_returns_success_after_three_unavailable_responses(self):
        transport, calls = sequence_transport([503, 503, 503, 200])
        sleep = RecordingSleep()
        options = RetryOptions(attempts=4, base_delay_ms=400, max_delay_ms=2000)

        async with httpx.AsyncClient(transport=transport) as client:
            response = await fetch_with_retry(client, "https://example.org/Q1.json",
                                              options=options, sleep=sleep)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(calls), 4)
        self.assertEqual(len(sleep.delays), 3)
        for delay in sleep.delays:
            self.assertLessEqual(delay, options.max_delay_ms / 1000)

    async def test_client_errors_are_returned_immediately(self):
        transport, calls = sequence_transport([404])
        sleep = RecordingSleep()

        async with httpx.AsyncClient(transport=transport) as client:
            response = await fetch_with_retry(client, "https://example.org/missing", sleep=sleep)

        self.assertEqual(response.status_code, 404)
        self.assertEqual(len(calls), 1)
        self.assertEqual(sleep.delays, [])

    async def test_rate_limit_is_retried(self):
        transport, calls = sequence_transport([429, 200])
        sleep = RecordingSleep()

        async with httpx.AsyncClient(transport=transport) as client:
            response = await fetch_with_retry(client, "https://example.org/", sleep=sleep)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(calls), 2)

    async def test_exhausted_budget_raises(self):
        transport, calls = sequence_transport([500])
        sleep = RecordingSleep()

        async with httpx.AsyncClient(transport=transport) as client:
            with self.assertRaises(RetryExhaustedError) as ctx:
                await fetch_with_retry(client, "https://example.org/", sleep=sleep,
                                       options=RetryOptions(attempts=3))

        self.assertEqual(len(calls), 3)
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(ctx.exception.attempts, 3)
        # No wait after the final attempt
        self.assertEqual(len(sleep.delays), 2)

    async def test_transport_errors_are_retried(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            if len(attempts) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={})

        sleep = RecordingSleep()
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            response = await fetch_with_retry(client, "https://example.org/", sleep=sleep)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(attempts), 2)
        self.assertEqual(sleep.delays, [0.4])


if __name__ == "__main__":
    unittest.main()

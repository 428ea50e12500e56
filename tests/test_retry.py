import asyncio

import pytest

from scraping.errors import FetchError, FetchErrorKind
from scraping.retry import with_retry


class Flaky:
    def __init__(self, failures, result="ok"):
        self.failures = list(failures)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return self.result


def recorder(delays):
    async def sleep(delay):
        delays.append(delay)
    return sleep


def test_two_failures_then_success():
    delays = []
    call = Flaky([FetchError(FetchErrorKind.TIMEOUT), FetchError(FetchErrorKind.HTTP_STATUS, code=503)])

    result = asyncio.run(with_retry(call, max_attempts=3, base_delay=0.5, sleep=recorder(delays)))

    assert result == "ok"
    assert call.calls == 3
    assert delays == [0.5, 1.0]


def test_exhaustion_reraises_last_error_unchanged():
    delays = []
    last = FetchError(FetchErrorKind.HTTP_STATUS, code=404)
    call = Flaky([FetchError(FetchErrorKind.NETWORK_FAILURE), FetchError(FetchErrorKind.TIMEOUT), last])

    with pytest.raises(FetchError) as exc_info:
        asyncio.run(with_retry(call, max_attempts=3, base_delay=1.0, sleep=recorder(delays)))

    assert exc_info.value is last
    assert call.calls == 3
    assert delays == [1.0, 2.0]


def test_single_attempt_does_not_sleep():
    delays = []
    call = Flaky([FetchError(FetchErrorKind.PARSE_FAILURE)])

    with pytest.raises(FetchError):
        asyncio.run(with_retry(call, max_attempts=1, base_delay=1.0, sleep=recorder(delays)))

    assert delays == []


def test_plain_lambda_returning_coroutine_is_awaited():
    delays = []
    flaky = Flaky([FetchError(FetchErrorKind.NETWORK_FAILURE), FetchError(FetchErrorKind.TIMEOUT)], result=["ok"])

    result = asyncio.run(with_retry(lambda: flaky(), max_attempts=3, base_delay=0.25, sleep=recorder(delays)))

    assert result == ["ok"]
    assert flaky.calls == 3
    assert delays == [0.25, 0.5]

from __future__ import annotations

import pytest
import requests

from issuequeue import retry
from issuequeue.github_rest import GitHubAPIError

# Constants for test expectations
FIRST_SUCCESS_ATTEMPT = 2  # transient once then success
EXPLICIT_BACKOFF = 7.0


def _no_sleep(_: float) -> None:
    return None


def test_is_transient_tokens():
    assert retry.is_transient('Rate Limit exceeded')
    assert retry.is_transient('secondary rate limit triggered')
    assert retry.is_transient('ABUSE DETECTION mechanism')
    assert not retry.is_transient('some other error')


def test_run_with_retries_transient_then_success():
    attempts: list[int] = []

    def fn() -> str:
        attempts.append(1)
        if len(attempts) < FIRST_SUCCESS_ATTEMPT:
            raise GitHubAPIError('limited', status=429)
        return 'ok'

    cfg = retry.RetryConfig(attempts=3, base_sleep=0)
    assert retry.run_with_retries(fn, cfg=cfg, sleep=_no_sleep) == 'ok'
    assert len(attempts) == FIRST_SUCCESS_ATTEMPT


def test_run_with_retries_non_transient_propagates_immediately():
    attempts: list[int] = []

    def fn() -> str:
        attempts.append(1)
        raise GitHubAPIError('forbidden', status=403, response_text='Resource not accessible')

    with pytest.raises(GitHubAPIError):
        retry.run_with_retries(fn, cfg=retry.RetryConfig(attempts=5, base_sleep=0), sleep=_no_sleep)
    assert len(attempts) == 1


def test_run_with_retries_exhausts_attempts():
    attempts: list[int] = []

    def fn() -> str:
        attempts.append(1)
        raise requests.Timeout('read timed out')

    with pytest.raises(requests.Timeout):
        retry.run_with_retries(fn, cfg=retry.RetryConfig(attempts=3, base_sleep=0), sleep=_no_sleep)
    assert len(attempts) == 3


def test_retry_after_header_is_honoured(monkeypatch):
    monkeypatch.delenv('ISSUEQUEUE_RETRY_MAX_SLEEP', raising=False)
    slept: list[float] = []
    calls: list[int] = []

    def fn() -> str:
        calls.append(1)
        if len(calls) == 1:
            raise GitHubAPIError('limited', status=429, retry_after=str(int(EXPLICIT_BACKOFF)))
        return 'ok'

    retry.run_with_retries(fn, cfg=retry.RetryConfig(attempts=2, base_sleep=0), sleep=slept.append)
    assert slept == [EXPLICIT_BACKOFF]


def test_max_sleep_env_caps_backoff(monkeypatch):
    monkeypatch.setenv('ISSUEQUEUE_RETRY_MAX_SLEEP', '1')
    assert retry._compute_sleep(1, retry.RetryConfig(attempts=3, base_sleep=0), 'Retry-After: 60') == 1.0


def test_extract_explicit_backoff_patterns():
    assert retry._extract_explicit_backoff('Retry-After: 12') == 12.0
    assert retry._extract_explicit_backoff('please wait 30 seconds') == 30.0
    assert retry._extract_explicit_backoff('nothing useful') is None
    assert retry._extract_explicit_backoff('') is None


def test_retry_config_reads_environment(monkeypatch):
    monkeypatch.setenv('ISSUEQUEUE_RETRY_ATTEMPTS', '5')
    monkeypatch.setenv('ISSUEQUEUE_RETRY_BASE', '0.1')

    cfg = retry.RetryConfig()

    assert cfg.attempts == 5
    assert cfg.base_sleep == 0.1


def test_should_retry_classification():
    assert retry.should_retry(requests.ConnectionError('reset'))
    assert retry.should_retry(GitHubAPIError('x', status=503))
    assert not retry.should_retry(GitHubAPIError('x', status=422))
    assert retry.should_retry(RuntimeError('secondary rate limit'))
    assert not retry.should_retry(ValueError('bad value'))

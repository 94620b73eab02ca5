"""Tests for Graph retry conditions and wait strategy."""

from unittest.mock import MagicMock

import httpx
import pytest

from roadmap_connector.platform.destinations.retry_helpers import (
    should_retry_graph_call,
    wait_retry_after_with_backoff,
)


def _status_error(status_code: int, headers=None) -> httpx.HTTPStatusError:
    request = httpx.Request("PUT", "https://graph.test/v1.0/external/connections/x/items/1")
    response = httpx.Response(status_code, headers=headers, request=request)
    return httpx.HTTPStatusError(f"{status_code}", request=request, response=response)


def _retry_state(exception: BaseException, attempt_number: int = 1):
    retry_state = MagicMock()
    retry_state.outcome.exception.return_value = exception
    retry_state.attempt_number = attempt_number
    return retry_state


@pytest.mark.parametrize(
    "status_code, expected",
    [(429, True), (500, True), (502, True), (503, True), (504, True), (400, False), (404, False)],
)
def test_should_retry_graph_call_on_status(status_code, expected):
    """Test which HTTP statuses are retried."""
    assert should_retry_graph_call(_status_error(status_code)) is expected


def test_should_retry_graph_call_on_network_errors():
    """Test that timeouts and connect errors are retried, other errors are not."""
    request = httpx.Request("GET", "https://graph.test")

    assert should_retry_graph_call(httpx.ReadTimeout("timeout", request=request))
    assert should_retry_graph_call(httpx.ConnectError("refused", request=request))
    assert not should_retry_graph_call(ValueError("bad"))


def test_wait_honors_retry_after():
    """Test that the Retry-After header sets the wait on 429."""
    state = _retry_state(_status_error(429, headers={"Retry-After": "7"}))

    assert wait_retry_after_with_backoff(state) == 7.0


@pytest.mark.parametrize("retry_after, expected", [("0", 1.0), ("3600", 120.0)])
def test_wait_clamps_retry_after(retry_after, expected):
    """Test that Retry-After is clamped to a sane range."""
    state = _retry_state(_status_error(503, headers={"Retry-After": retry_after}))

    assert wait_retry_after_with_backoff(state) == expected


def test_wait_falls_back_to_backoff_without_header():
    """Test exponential backoff when Graph sends no usable Retry-After."""
    state = _retry_state(_status_error(429, headers={"Retry-After": "soon"}), attempt_number=1)

    assert 2 <= wait_retry_after_with_backoff(state) <= 30

# coding: utf-8
"""
Logging and backoff helpers for failed HTTP calls made by :class:`imagecraft.api._api._Api`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

RETRY_STATUS_CODES = {
    408,  # Request Timeout
    429,  # Too Many Requests
    500,  # Internal Server Error
    502,  # Bad Gateway
    503,  # Service Unavailable
    504,  # Gateway Timeout
}


def is_retryable(exc: Exception, response: Optional[httpx.Response] = None) -> bool:
    if isinstance(exc, (httpx.TransportError, httpx.TimeoutException)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = response.status_code if response is not None else exc.response.status_code
        return status in RETRY_STATUS_CODES
    return False


def _describe(
    exc: Exception,
    method: str,
    url: str,
    response: Optional[httpx.Response],
    retry_info: Optional[Dict[str, Any]],
) -> str:
    msg = f"Request {method!r} to {url} failed: {exc!r}"
    if response is not None:
        msg += f" (status {response.status_code})"
    if retry_info is not None:
        msg += f" [retry {retry_info['retry_idx']}/{retry_info['retry_limit']}]"
    return msg


async def process_requests_exception_async(
    external_logger: logging.Logger,
    exc: Exception,
    method: str,
    url: str,
    verbose: bool = True,
    swallow_exc: bool = False,
    sleep_sec: float = 0,
    response: Optional[httpx.Response] = None,
    retry_info: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Log a failed request and sleep before the next attempt.
    Non-retryable errors are always re-raised; retryable ones only when ``swallow_exc`` is False.
    """
    if verbose:
        external_logger.warning(_describe(exc, method, url, response, retry_info))
    if not is_retryable(exc, response) or not swallow_exc:
        raise exc
    if sleep_sec:
        await asyncio.sleep(sleep_sec)


def process_unhandled_request(external_logger: logging.Logger, exc: Exception) -> None:
    external_logger.error(f"Unhandled request error: {exc!r}")
    raise exc

"""Shared HTTP helpers used by the registry client and the downloader.

Encapsulates timeouts, retries and a small TTL cache so registry modules
avoid duplicating try/except blocks. The cache is guarded by a lock because
install and update planning fetch MOD metadata from worker threads.
"""
from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Dict, Optional, Tuple

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


# Simple in-memory cache for HTTP responses
_http_cache: Dict[str, Tuple[Any, float]] = {}
_cache_lock = threading.Lock()


def _get_cache_key(method: str, url: str, headers: Optional[Dict[str, str]] = None) -> str:
    """Generate cache key from request parameters."""
    headers_str = str(sorted(headers.items())) if headers else ""
    return f"{method}:{url}:{headers_str}"


def _is_cache_valid(cache_entry: Tuple[Any, float]) -> bool:
    """Check if cache entry is still valid."""
    _, cached_time = cache_entry
    return time.time() - cached_time < Constants.HTTP_CACHE_TTL_SEC


def clear_cache() -> None:
    """Drop every cached response."""
    with _cache_lock:
        _http_cache.clear()


def robust_get(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], str]:
    """Perform GET request with timeout, retries, and caching with DEBUG traces.

    Returns:
        Tuple of (status_code, headers_dict, body_text). A status code of 0
        means every attempt failed at the transport level; the body then
        describes the last failure. Server errors are retried and never
        cached; if every attempt gets one, the last response is returned.
    """
    cache_key = _get_cache_key("GET", url, headers)
    safe_target = safe_url(url)

    with _cache_lock:
        entry = _http_cache.get(cache_key)
        if entry is not None and not _is_cache_valid(entry):
            del _http_cache[cache_key]
            entry = None
    if entry is not None:
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP cache hit",
                extra=extra_context(
                    event="cache_hit",
                    component="http_client",
                    action="GET",
                    target=safe_target
                )
            )
        cached_data, _ = entry
        return cached_data

    last_exception = None
    last_result = None

    for attempt in range(Constants.HTTP_RETRY_MAX):
        if attempt:
            time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** (attempt - 1)))
        with Timer() as t:
            try:
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request",
                        extra=extra_context(
                            event="http_request",
                            component="http_client",
                            action="GET",
                            target=safe_target,
                            attempt=attempt + 1
                        )
                    )

                response = requests.get(
                    url,
                    timeout=Constants.REQUEST_TIMEOUT,
                    headers=headers,
                    **kwargs
                )
            except requests.Timeout:
                last_exception = "timeout"
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP timeout",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action="GET",
                            outcome="timeout",
                            attempt=attempt + 1,
                            target=safe_target
                        )
                    )
                continue
            except requests.RequestException as exc:
                last_exception = str(exc)
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request exception",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action="GET",
                            outcome="request_exception",
                            attempt=attempt + 1,
                            target=safe_target
                        )
                    )
                continue

            result = (response.status_code, dict(response.headers), response.text)
            if response.status_code >= 500:
                last_exception = f"HTTP {response.status_code}"
                last_result = result
                continue

            with _cache_lock:
                _http_cache[cache_key] = (result, time.time())

            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP response ok",
                    extra=extra_context(
                        event="http_response",
                        component="http_client",
                        action="GET",
                        outcome="success",
                        status_code=response.status_code,
                        duration_ms=t.duration_ms(),
                        target=safe_target
                    )
                )
            return result

    if last_result is not None:
        return last_result
    # All retries failed
    return 0, {}, f"Request failed after {Constants.HTTP_RETRY_MAX} attempts: {last_exception}"


def get_json(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], Optional[Any]]:
    """Perform GET request and parse JSON response with DEBUG traces.

    Args:
        url: Target URL
        headers: Optional request headers
        **kwargs: Additional requests.get parameters

    Returns:
        Tuple of (status_code, headers_dict, parsed_json_or_none)
    """
    status_code, response_headers, text = robust_get(url, headers=headers, **kwargs)

    if status_code == 200 and text:
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            if is_debug_enabled(logger):
                logger.debug(
                    "JSON decode error",
                    extra=extra_context(
                        event="parse",
                        component="http_client",
                        action="get_json",
                        outcome="json_decode_error",
                        status_code=status_code,
                        target=safe_url(url)
                    )
                )
            return status_code, response_headers, None
        if is_debug_enabled(logger):
            logger.debug(
                "Parsed JSON response",
                extra=extra_context(
                    event="parse",
                    component="http_client",
                    action="get_json",
                    outcome="success",
                    status_code=status_code,
                    target=safe_url(url)
                )
            )
        return status_code, response_headers, parsed

    return status_code, response_headers, None


def stream_get(url: str, **kwargs: Any) -> requests.Response:
    """Open a streaming GET for large downloads.

    The caller owns the response and must close it (it is a context
    manager). Transport errors propagate as ``requests.RequestException``.
    """
    safe_target = safe_url(url)
    if is_debug_enabled(logger):
        logger.debug(
            "HTTP stream request",
            extra=extra_context(
                event="http_request",
                component="http_client",
                action="GET",
                target=safe_target,
                stream=True
            )
        )
    response = requests.get(url, timeout=Constants.REQUEST_TIMEOUT, stream=True, **kwargs)
    if is_debug_enabled(logger):
        logger.debug(
            "HTTP stream response",
            extra=extra_context(
                event="http_response",
                component="http_client",
                action="GET",
                status_code=response.status_code,
                target=safe_target
            )
        )
    return response

"""Shared HTTP helpers used by the artifact fetcher.

Encapsulates common request/timeout error handling so callers avoid
duplicating try/except blocks. This module is dependency-light and can be
safely imported from registry/* without cycles.
"""
from __future__ import annotations

import logging
import sys
from typing import Any, Dict, Optional

import requests

from constants import Constants, ExitCodes
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


def _default_headers(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    merged = {"User-Agent": Constants.USER_AGENT, "Accept": "*/*"}
    if headers:
        merged.update(headers)
    return merged


def safe_get(
    url: str,
    *,
    context: str,
    fatal: bool = True,
    timeout: Optional[float] = None,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any,
) -> requests.Response:
    """Perform a GET request with consistent error handling and DEBUG traces.

    Args:
        url: Target URL.
        context: Human-readable source tag for logs (e.g., the repository id).
        fatal: When True, timeouts and connection errors terminate the process
            with ExitCodes.CONNECTION_ERROR. When False they are re-raised so the
            caller can record them.
        timeout: Request timeout in seconds; defaults to Constants.REQUEST_TIMEOUT.
        headers: Extra request headers.
        **kwargs: Passed through to requests.get.

    Returns:
        requests.Response: The HTTP response object.
    """
    safe_target = safe_url(url)
    effective_timeout = timeout if timeout is not None else Constants.REQUEST_TIMEOUT
    with Timer() as t:
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP request",
                extra=extra_context(
                    event="http_request",
                    component="http_client",
                    action="GET",
                    target=safe_target,
                    context=context
                )
            )
        try:
            res = requests.get(
                url,
                timeout=effective_timeout,
                headers=_default_headers(headers),
                **kwargs
            )
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP response",
                    extra=extra_context(
                        event="http_response",
                        component="http_client",
                        action="GET",
                        outcome="success" if res.status_code == 200 else "non_200",
                        status_code=res.status_code,
                        duration_ms=t.duration_ms(),
                        target=safe_target,
                        context=context
                    )
                )
            return res
        except requests.Timeout:
            if not fatal:
                raise
            logger.error(
                "%s request timed out after %s seconds",
                context,
                effective_timeout,
            )
            sys.exit(ExitCodes.CONNECTION_ERROR.value)
        except requests.RequestException as exc:  # includes ConnectionError
            if not fatal:
                raise
            logger.error("%s connection error: %s", context, exc)
            sys.exit(ExitCodes.CONNECTION_ERROR.value)

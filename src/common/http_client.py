"""Shared HTTP helpers used by the registry client and the repository builder.

Encapsulates session setup, timeouts and status handling. Errors are raised,
never swallowed: retrying is the Fetcher's job, so these helpers make a single
attempt and let requests exceptions propagate.
"""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


def create_session(headers: Optional[Dict[str, str]] = None) -> requests.Session:
    """Return a requests session carrying the default User-Agent."""
    session = requests.Session()
    session.headers.update({"User-Agent": Constants.USER_AGENT})
    if headers:
        session.headers.update(headers)
    return session


def _log_response(action: str, url: str, response: requests.Response, duration_ms: int, context: str) -> None:
    if is_debug_enabled(logger):
        logger.debug(
            "HTTP response",
            extra=extra_context(
                event="http_response",
                component="http_client",
                action=action,
                status_code=response.status_code,
                duration_ms=duration_ms,
                target=safe_url(url),
                context=context,
            ),
        )


def get_text(
    session: requests.Session,
    url: str,
    *,
    context: str,
    **kwargs: Any,
) -> str:
    """Perform a GET request and return the body text.

    Raises:
        requests.HTTPError: On a non-2xx response.
        requests.RequestException: On transport failures (DNS, connection, timeout).
    """
    with Timer() as t:
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP request",
                extra=extra_context(
                    event="http_request",
                    component="http_client",
                    action="GET",
                    target=safe_url(url),
                    context=context,
                ),
            )
        response = session.get(url, timeout=Constants.REQUEST_TIMEOUT, **kwargs)
        _log_response("GET", url, response, t.duration_ms(), context)
    response.raise_for_status()
    return response.text


def download_to_file(
    session: requests.Session,
    url: str,
    dest: str,
    *,
    context: str,
) -> str:
    """Stream ``url`` into ``dest`` atomically.

    The body is written to ``dest + '.part'`` and renamed into place only after
    the transfer completes, so an interrupted download never leaves a file that
    looks complete.

    Returns:
        The destination path.
    """
    partial = dest + Constants.PARTIAL_EXTENSION
    with Timer() as t:
        try:
            with session.get(url, timeout=Constants.REQUEST_TIMEOUT, stream=True) as response:
                _log_response("DOWNLOAD", url, response, t.duration_ms(), context)
                response.raise_for_status()
                with open(partial, "wb") as fh:
                    for chunk in response.iter_content(chunk_size=Constants.DOWNLOAD_CHUNK_SIZE):
                        if chunk:
                            fh.write(chunk)
        except BaseException:
            if os.path.exists(partial):
                os.remove(partial)
            raise
    os.replace(partial, dest)
    if is_debug_enabled(logger):
        logger.debug(
            "Download complete",
            extra=extra_context(
                event="download",
                component="http_client",
                action="DOWNLOAD",
                outcome="success",
                duration_ms=t.duration_ms(),
                target=safe_url(url),
                context=context,
            ),
        )
    return dest

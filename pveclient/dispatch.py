"""Request dispatch against the Proxmox VE API root.

Builds GET/POST/PUT/DELETE requests relative to the session's base URL,
attaches the ticket cookie and CSRF token, and applies the session's
transport options. Responses are returned raw; see ``result.normalize``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Union

import requests
import urllib3

from .errors import TransportError
from .session import ClientSession

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

Body = Union[Mapping[str, Any], str, None]

_insecure_warning_silenced = False


def silence_insecure_warning() -> None:
    """Suppress urllib3's InsecureRequestWarning once per process."""
    global _insecure_warning_silenced
    if _insecure_warning_silenced:
        return
    urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
    _insecure_warning_silenced = True


def encode_body(data: Body) -> Optional[str]:
    """Serialize a form body as ``key=value`` pairs joined by ``&``.

    Values are not escaped: creation bodies already carry percent-encoded
    volume identifiers. Strings pass through unchanged.
    """
    if data is None:
        return None
    if isinstance(data, str):
        return data
    return "&".join(f"{key}={value}" for key, value in data.items())


def dispatch(
    session: ClientSession,
    http: requests.Session,
    method: str,
    path: str,
    params: Body = None,
) -> requests.Response:
    """
    Send one request and return the raw response.

    Args:
        session: Client session holding base URL, transport options and tickets
        http: requests session used for the exchange
        method: GET, POST, PUT or DELETE
        path: API path relative to the base URL (e.g. "nodes/pve1/lxc")
        params: Query params for GET, form body for POST/PUT, ignored for DELETE

    Returns:
        The requests.Response, whatever its status

    Raises:
        TransportError: If no response could be obtained
    """
    method = method.upper()
    url = session.url_for(path)
    headers = session.tickets.auth_headers()
    kwargs: Dict[str, Any] = {
        "headers": headers,
        "verify": session.transport.verify,
        "timeout": session.transport.timeout,
    }

    if method == "GET":
        if isinstance(params, str):
            raise TypeError("GET params must be a mapping")
        kwargs["params"] = dict(params or {})
    elif method in ("POST", "PUT"):
        body = encode_body(params)
        if body is not None:
            headers["Content-Type"] = FORM_CONTENT_TYPE
            kwargs["data"] = body
    elif method != "DELETE":
        raise ValueError(f"Unsupported HTTP method: {method}")

    if not session.transport.verify_ssl:
        silence_insecure_warning()

    try:
        response = http.request(method, url, **kwargs)
    except requests.exceptions.RequestException as e:
        logger.debug("%s %s failed: %s", method, path, e)
        raise TransportError(f"{method} {url} failed: {e}", method=method, url=url) from e

    logger.debug("%s %s -> %s", method, path, response.status_code)
    return response

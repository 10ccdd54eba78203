"""Exception hierarchy for the Proxmox VE client."""

from __future__ import annotations

from typing import Optional


class ProxmoxError(Exception):
    """Base exception for all client errors."""


class AuthenticationError(ProxmoxError):
    """Raised in fail-fast mode when the ticket request is rejected."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransportError(ProxmoxError):
    """Raised when the HTTP exchange itself fails (DNS, TLS, refused, timeout)."""

    def __init__(self, message: str, method: str, url: str):
        super().__init__(message)
        self.method = method
        self.url = url


class ResponseError(ProxmoxError):
    """Base for errors unwrapped from an ``Error`` result."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class RequestError(ResponseError):
    """The API answered with a non-200 status."""


class MalformedResponseError(ResponseError):
    """The API answered 200 but the body is not a usable JSON envelope."""


__all__ = [
    "AuthenticationError",
    "MalformedResponseError",
    "ProxmoxError",
    "RequestError",
    "ResponseError",
    "TransportError",
]

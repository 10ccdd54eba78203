"""Session state: connection settings plus the ticket store filled at login."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

COOKIE_NAME = "PVEAuthCookie"
CSRF_FIELD = "CSRFPreventionToken"


class ConnectionStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    CONNECTED = "connected"
    ERROR = "error"


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str = field(repr=False)
    realm: str = "pam"


@dataclass(frozen=True)
class TransportOptions:
    verify_ssl: bool = True
    ca_bundle: Optional[str] = None
    timeout: Optional[float] = None  # seconds; None waits forever

    @property
    def verify(self) -> bool | str:
        # requests accepts a CA bundle path in place of True
        if self.verify_ssl and self.ca_bundle:
            return self.ca_bundle
        return self.verify_ssl


def encode_ticket(ticket: str) -> str:
    """Percent-encode the characters of a ticket that break the cookie value."""
    return ticket.replace(":", "%3A").replace("=", "%3D")


class TicketStore:
    """Authentication artifacts of one session.

    Written only by the authenticator; everything else reads through the
    properties.
    """

    def __init__(self) -> None:
        self._cookie: Optional[str] = None
        self._csrf_token: Optional[str] = None
        self._status = ConnectionStatus.UNINITIALIZED

    @property
    def cookie(self) -> Optional[str]:
        return self._cookie

    @property
    def csrf_token(self) -> Optional[str]:
        return self._csrf_token

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    def record_ticket(self, ticket: Optional[str], csrf_token: Optional[str]) -> None:
        self._cookie = f"{COOKIE_NAME}={encode_ticket(ticket)}" if ticket is not None else None
        self._csrf_token = csrf_token
        self._status = ConnectionStatus.CONNECTED

    def mark_failed(self) -> None:
        self._cookie = None
        self._csrf_token = None
        self._status = ConnectionStatus.ERROR

    def auth_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self._cookie is not None:
            headers["Cookie"] = self._cookie
        if self._csrf_token is not None:
            headers[CSRF_FIELD] = self._csrf_token
        return headers

    def __repr__(self) -> str:
        return f"TicketStore(status={self._status.value!r}, has_cookie={self._cookie is not None})"


@dataclass(frozen=True)
class ClientSession:
    base_url: str
    node: str
    credentials: Credentials
    transport: TransportOptions = field(default_factory=TransportOptions)
    tickets: TicketStore = field(default_factory=TicketStore, compare=False)

    def __post_init__(self) -> None:
        # relative paths resolve under the API root only with a trailing slash
        if not self.base_url.endswith("/"):
            object.__setattr__(self, "base_url", self.base_url + "/")

    @property
    def connection_status(self) -> ConnectionStatus:
        return self.tickets.status

    def url_for(self, path: str) -> str:
        return self.base_url + path.lstrip("/")

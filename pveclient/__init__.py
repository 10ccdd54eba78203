"""pveclient: ticket-authenticated client for the Proxmox VE API."""

from .client import ProxmoxClient, format_task_status
from .config import ProxmoxConfig, load_config
from .errors import (
    AuthenticationError,
    MalformedResponseError,
    ProxmoxError,
    RequestError,
    ResponseError,
    TransportError,
)
from .result import ApiResult, Data, Error, ErrorKind, normalize
from .session import ClientSession, ConnectionStatus, Credentials, TicketStore, TransportOptions

__version__ = "0.1.0"

__all__ = [
    "ApiResult",
    "AuthenticationError",
    "ClientSession",
    "ConnectionStatus",
    "Credentials",
    "Data",
    "Error",
    "ErrorKind",
    "MalformedResponseError",
    "ProxmoxClient",
    "ProxmoxConfig",
    "ProxmoxError",
    "RequestError",
    "ResponseError",
    "TicketStore",
    "TransportError",
    "TransportOptions",
    "format_task_status",
    "load_config",
    "normalize",
]

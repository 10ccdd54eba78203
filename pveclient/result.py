"""Tagged results for Proxmox API calls.

Every call returns either ``Data`` carrying the ``data`` member of the JSON
envelope, or ``Error`` carrying the HTTP status and a readable message.
Callers branch on ``result.ok`` or call ``unwrap()`` to get exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Union

import requests

from .errors import MalformedResponseError, RequestError


class ErrorKind(str, Enum):
    REQUEST = "request"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class Data:
    value: Any

    ok = True

    def unwrap(self) -> Any:
        return self.value

    def map(self, fn: Callable[[Any], Any]) -> "Data":
        return Data(fn(self.value))

    def and_then(self, fn: Callable[[Any], "ApiResult"]) -> "ApiResult":
        """Chain a step that may itself reject the payload."""
        return fn(self.value)


@dataclass(frozen=True)
class Error:
    status_code: int
    message: str
    kind: ErrorKind = ErrorKind.REQUEST
    reason: Optional[str] = None

    ok = False

    @property
    def legacy_message(self) -> str:
        """The ``NOK: error code = <status>`` string older callers match on."""
        return f"NOK: error code = {self.status_code}"

    def unwrap(self) -> Any:
        if self.kind is ErrorKind.MALFORMED:
            raise MalformedResponseError(self.message, self.status_code)
        raise RequestError(self.message, self.status_code)

    def map(self, fn: Callable[[Any], Any]) -> "Error":
        return self

    def and_then(self, fn: Callable[[Any], "ApiResult"]) -> "Error":
        return self


ApiResult = Union[Data, Error]


def malformed(detail: str) -> Error:
    """Error for a 200 response whose payload cannot be used."""
    return Error(200, f"NOK: malformed response ({detail})", ErrorKind.MALFORMED)


def normalize(response: requests.Response) -> ApiResult:
    """Map a raw response to ``Data`` or ``Error``."""
    if response.status_code != 200:
        return Error(
            status_code=response.status_code,
            message=f"NOK: error code = {response.status_code}",
            reason=response.reason or None,
        )

    try:
        body = response.json()
    except ValueError as e:
        return malformed(f"invalid JSON: {e}")

    if not isinstance(body, dict) or "data" not in body:
        return malformed("no 'data' member")

    return Data(body["data"])

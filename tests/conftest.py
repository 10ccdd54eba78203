from __future__ import annotations

import pytest

from pveclient import ProxmoxClient

from .fakes import BASE_URL, FakeHTTP, ticket_response


@pytest.fixture
def http() -> FakeHTTP:
    return FakeHTTP(ticket_response())


@pytest.fixture
def client(http: FakeHTTP) -> ProxmoxClient:
    return ProxmoxClient(BASE_URL, "pve1", "root", "secret", http=http)

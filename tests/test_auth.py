from __future__ import annotations

from urllib.parse import parse_qs

import pytest
import requests

from pveclient import AuthenticationError, ConnectionStatus, ProxmoxClient, TransportError
from pveclient.auth import authenticate
from pveclient.session import ClientSession, Credentials, TicketStore, encode_ticket

from .fakes import BASE_URL, CSRF, TICKET, FakeHTTP, make_response, ticket_response


def _session() -> ClientSession:
    return ClientSession(BASE_URL, "pve1", Credentials("root", "s3cr&t=1", "pve"))


def test_ticket_is_encoded_into_cookie() -> None:
    session = _session()
    authenticate(session, FakeHTTP(ticket_response()))

    assert session.tickets.status is ConnectionStatus.CONNECTED
    assert session.tickets.cookie == "PVEAuthCookie=" + TICKET.replace(":", "%3A").replace("=", "%3D")
    assert ":" not in session.tickets.cookie.split("=", 1)[1]
    assert session.tickets.csrf_token == CSRF


def test_login_posts_credentials_form() -> None:
    http = FakeHTTP(ticket_response())
    authenticate(_session(), http)

    call = http.last
    assert call["method"] == "POST"
    assert call["url"] == BASE_URL + "access/ticket"
    form = parse_qs(call["data"])
    assert form == {"username": ["root"], "realm": ["pve"], "password": ["s3cr&t=1"]}
    assert "Cookie" not in call["headers"]


def test_rejected_login_sets_error_without_artifacts() -> None:
    session = _session()
    status = authenticate(session, FakeHTTP(make_response(401, {"data": None})))

    assert status == 401
    assert session.tickets.status is ConnectionStatus.ERROR
    assert session.tickets.cookie is None
    assert session.tickets.csrf_token is None
    assert session.tickets.auth_headers() == {}


def test_missing_ticket_still_marks_connected() -> None:
    session = _session()
    authenticate(session, FakeHTTP(make_response(200, {"data": {"CSRFPreventionToken": CSRF}})))

    assert session.tickets.status is ConnectionStatus.CONNECTED
    assert session.tickets.cookie is None
    assert session.tickets.auth_headers() == {"CSRFPreventionToken": CSRF}


def test_unreadable_ticket_body_is_an_error() -> None:
    session = _session()
    authenticate(session, FakeHTTP(make_response(200, raw=b"<html>proxy</html>")))

    assert session.tickets.status is ConnectionStatus.ERROR


def test_ticket_store_starts_uninitialized() -> None:
    store = TicketStore()
    assert store.status is ConnectionStatus.UNINITIALIZED
    with pytest.raises(AttributeError):
        store.cookie = "PVEAuthCookie=forged"  # type: ignore[misc]


def test_encode_ticket_replaces_colons_and_equals() -> None:
    assert encode_ticket("a:b=c") == "a%3Ab%3Dc"


def test_failed_login_does_not_block_requests() -> None:
    http = FakeHTTP(make_response(401, {}), make_response(401, {}))
    client = ProxmoxClient(BASE_URL, "pve1", "root", "wrong", http=http)

    assert client.connection_status is ConnectionStatus.ERROR
    result = client.get_containers()
    assert not result.ok
    assert result.status_code == 401
    assert len(http.calls) == 2


def test_fail_fast_raises_on_rejected_login() -> None:
    http = FakeHTTP(make_response(401, {}))
    with pytest.raises(AuthenticationError) as exc_info:
        ProxmoxClient(BASE_URL, "pve1", "root", "wrong", fail_fast=True, http=http)
    assert exc_info.value.status_code == 401


def test_login_transport_failure_raises() -> None:
    http = FakeHTTP(requests.exceptions.ConnectionError("connection refused"))
    with pytest.raises(TransportError):
        ProxmoxClient(BASE_URL, "pve1", "root", "secret", http=http)

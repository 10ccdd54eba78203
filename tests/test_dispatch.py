from __future__ import annotations

import pytest
import requests

from pveclient import ProxmoxClient, TransportError
from pveclient.dispatch import FORM_CONTENT_TYPE, encode_body

from .fakes import BASE_URL, CSRF, TICKET, FakeHTTP, make_response

COOKIE = "PVEAuthCookie=" + TICKET.replace(":", "%3A").replace("=", "%3D")


def test_get_carries_auth_alongside_caller_params(client: ProxmoxClient, http: FakeHTTP) -> None:
    http.queue_response(make_response(200, {"data": []}))
    client.get("nodes/pve1/tasks", {"limit": 50, "CSRFPreventionToken": "spoofed", "Cookie": "x"})

    call = http.last
    assert call["method"] == "GET"
    assert call["url"] == BASE_URL + "nodes/pve1/tasks"
    assert call["params"]["limit"] == 50
    assert call["headers"]["Cookie"] == COOKIE
    assert call["headers"]["CSRFPreventionToken"] == CSRF


def test_post_mapping_body_is_joined_without_escaping(client: ProxmoxClient, http: FakeHTTP) -> None:
    http.queue_response(make_response(200, {"data": "UPID:pve1:1"}))
    client.post("nodes/pve1/lxc", {"vmid": 200, "ostemplate": "local%3Avztmpl%2Fdebian.tar.gz"})

    call = http.last
    assert call["data"] == "vmid=200&ostemplate=local%3Avztmpl%2Fdebian.tar.gz"
    assert call["headers"]["Content-Type"] == FORM_CONTENT_TYPE
    assert call["headers"]["Cookie"] == COOKIE
    assert call["headers"]["CSRFPreventionToken"] == CSRF


def test_put_raw_string_body_is_sent_as_is(client: ProxmoxClient, http: FakeHTTP) -> None:
    http.queue_response(make_response(200, {"data": None}))
    client.put("nodes/pve1/lxc/200/config", "swap=2048&memory=512")

    assert http.last["method"] == "PUT"
    assert http.last["data"] == "swap=2048&memory=512"


def test_post_without_body_sends_no_data(client: ProxmoxClient, http: FakeHTTP) -> None:
    http.queue_response(make_response(200, {"data": "UPID:pve1:2"}))
    client.post("nodes/pve1/lxc/200/status/start")

    assert "data" not in http.last
    assert "Content-Type" not in http.last["headers"]


def test_delete_has_no_body_but_carries_auth(client: ProxmoxClient, http: FakeHTTP) -> None:
    http.queue_response(make_response(200, {"data": "UPID:pve1:3"}))
    client.delete("nodes/pve1/lxc/200")

    call = http.last
    assert call["method"] == "DELETE"
    assert "data" not in call and "params" not in call
    assert call["headers"]["Cookie"] == COOKIE


def test_transport_options_apply_to_every_request() -> None:
    http = FakeHTTP(make_response(200, {"data": {"ticket": "t", "CSRFPreventionToken": "c"}}),
                    make_response(200, {"data": {}}))
    client = ProxmoxClient("https://pve:8006/api2/json", "pve1", "root", "pw",
                           verify_ssl=False, timeout=7.5, http=http)
    client.get_version()

    for call in http.calls:
        assert call["verify"] is False
        assert call["timeout"] == 7.5
    assert http.last["url"] == "https://pve:8006/api2/json/version"


def test_ca_bundle_is_used_for_verification() -> None:
    http = FakeHTTP(make_response(200, {"data": {"ticket": "t"}}))
    ProxmoxClient(BASE_URL, "pve1", "root", "pw", ca_bundle="/etc/pve/ca.pem", http=http)

    assert http.last["verify"] == "/etc/pve/ca.pem"


def test_leading_slash_stays_under_api_root(client: ProxmoxClient, http: FakeHTTP) -> None:
    http.queue_response(make_response(200, {"data": []}))
    client.get("/nodes")

    assert http.last["url"] == BASE_URL + "nodes"


@pytest.mark.parametrize(
    "exc",
    [
        requests.exceptions.ConnectionError("refused"),
        requests.exceptions.SSLError("handshake failed"),
        requests.exceptions.Timeout("timed out"),
    ],
)
def test_network_failures_raise_transport_error(client: ProxmoxClient, http: FakeHTTP, exc: Exception) -> None:
    http.queue_response(exc)
    with pytest.raises(TransportError) as exc_info:
        client.get_containers()

    assert exc_info.value.method == "GET"
    assert exc_info.value.url == BASE_URL + "nodes/pve1/lxc"
    assert exc_info.value.__cause__ is exc


def test_unsupported_method_is_rejected(client: ProxmoxClient) -> None:
    with pytest.raises(ValueError):
        client._request("PATCH", "nodes")


def test_encode_body() -> None:
    assert encode_body(None) is None
    assert encode_body("a=1") == "a=1"
    assert encode_body({"a": 1, "b": "x"}) == "a=1&b=x"

"""Proxmox VE API Client

Provides a Python interface to the container, VM and task endpoints of a
single Proxmox VE node, authenticated with a ticket/CSRF token pair.
Documentation: https://pve.proxmox.com/wiki/Proxmox_VE_API
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import quote

import requests

from .auth import authenticate
from .config import ProxmoxConfig
from .dispatch import Body, dispatch
from .errors import AuthenticationError
from .result import ApiResult, Data, malformed, normalize
from .session import ClientSession, ConnectionStatus, Credentials, TransportOptions

logger = logging.getLogger(__name__)

TEMPLATE_VOLID = re.compile(r"local:vztmpl/(.*)\.tar\.gz")
CT_TEMPLATE_PREFIX = "local%3Avztmpl%2F"
VM_ISO_PREFIX = "local%3Aisol%2F"


def _keyed_by(records: Any, key: Callable[[Mapping[str, Any]], Any], field: str) -> ApiResult:
    if not isinstance(records, list):
        return malformed(f"expected a list, got {type(records).__name__}")
    keyed: Dict[Any, Any] = {}
    for record in records:
        if not isinstance(record, Mapping) or field not in record:
            return malformed(f"record without '{field}'")
        try:
            keyed[key(record)] = record
        except TypeError:
            return malformed(f"unhashable '{field}' value")
    return Data(keyed)


def _by_vmid(records: Any) -> ApiResult:
    return _keyed_by(records, lambda record: record["vmid"], "vmid")


def _by_template_name(records: Any) -> ApiResult:
    return _keyed_by(records, lambda record: TEMPLATE_VOLID.sub(r"\1", str(record["volid"])), "volid")


def format_task_status(data: Mapping[str, Any]) -> str:
    """Render a task status record as ``status`` or ``status:exitstatus``."""
    status = data.get("status")
    exitstatus = data.get("exitstatus")
    if exitstatus is not None:
        return f"{status}:{exitstatus}"
    return f"{status}"


def _task_status(data: Any) -> ApiResult:
    if not isinstance(data, Mapping):
        return malformed(f"expected a task status object, got {type(data).__name__}")
    return Data(format_task_status(data))


class ProxmoxClient:
    """Client for the Proxmox VE API of one node."""

    def __init__(self, base_url: str, node: str, username: str, password: str,
                 realm: str = "pam", verify_ssl: bool = True,
                 ca_bundle: Optional[str] = None, timeout: Optional[float] = None,
                 fail_fast: bool = False, http: Optional[requests.Session] = None):
        """
        Initialize the client and log in.

        Args:
            base_url: API root (e.g., "https://proxmox.example.com:8006/api2/json/")
            node: Node name all resource calls are scoped to
            username: Username without realm (e.g., "root")
            password: Password for the user
            realm: Authentication realm (default: "pam")
            verify_ssl: Whether to verify SSL certificates (default: True)
            ca_bundle: Optional CA bundle path used when verifying
            timeout: Per-request timeout in seconds (default: no timeout)
            fail_fast: Raise AuthenticationError if the login is rejected
            http: Optional requests.Session to send requests through

        Raises:
            AuthenticationError: If fail_fast is set and the login failed
            TransportError: If the cluster cannot be reached
        """
        self.session = ClientSession(
            base_url=base_url,
            node=node,
            credentials=Credentials(username=username, password=password, realm=realm),
            transport=TransportOptions(verify_ssl=verify_ssl, ca_bundle=ca_bundle, timeout=timeout),
        )
        self.http = http if http is not None else requests.Session()

        status_code = authenticate(self.session, self.http)
        if self.connection_status is ConnectionStatus.ERROR:
            if fail_fast:
                raise AuthenticationError(
                    f"Login as {username}@{realm} failed: HTTP {status_code}",
                    status_code=status_code,
                )
            logger.warning("Continuing without a valid ticket; requests will be rejected by the server")

    @classmethod
    def from_config(cls, config: ProxmoxConfig,
                    http: Optional[requests.Session] = None) -> "ProxmoxClient":
        """
        Build a client from a loaded config and log in.

        Args:
            config: Settings from load_config()
            http: Optional requests.Session to send requests through

        Returns:
            Connected (or, without fail_fast, failed-login) ProxmoxClient
        """
        return cls(
            base_url=config.url,
            node=config.node,
            username=config.username,
            password=config.password,
            realm=config.realm,
            verify_ssl=config.verify_ssl,
            ca_bundle=config.ca_bundle,
            timeout=config.timeout,
            fail_fast=config.fail_fast,
            http=http,
        )

    @property
    def node(self) -> str:
        return self.session.node

    @property
    def connection_status(self) -> ConnectionStatus:
        """Outcome of the login: connected or error."""
        return self.session.connection_status

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.http.close()

    def __enter__(self) -> "ProxmoxClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(self, method: str, path: str, params: Body = None) -> ApiResult:
        """
        Make an API request.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            path: API path relative to the base URL (e.g., "nodes/pve1/lxc")
            params: Query params (GET) or form body (POST/PUT)

        Returns:
            Data with the response's "data" member, or Error

        Raises:
            TransportError: On network-level failures
        """
        response = dispatch(self.session, self.http, method, path, params)
        return normalize(response)

    def _node_path(self, suffix: str) -> str:
        return f"nodes/{self.node}/{suffix}"

    # Generic calls

    def get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> ApiResult:
        return self._request("GET", path, params)

    def post(self, path: str, data: Body = None) -> ApiResult:
        return self._request("POST", path, data)

    def put(self, path: str, data: Body = None) -> ApiResult:
        return self._request("PUT", path, data)

    def delete(self, path: str) -> ApiResult:
        return self._request("DELETE", path)

    def get_version(self) -> ApiResult:
        """
        Get Proxmox version information.

        Returns:
            Data with the version info dictionary
        """
        return self.get("version")

    def test_connection(self) -> bool:
        """
        Test the API connection and authentication.

        Returns:
            True if logged in and the version endpoint answers, False otherwise
        """
        if self.connection_status is not ConnectionStatus.CONNECTED:
            return False
        return self.get_version().ok

    # Tasks and storage

    def get_task_status(self, upid: str) -> ApiResult:
        """
        Get the status of a task.

        Args:
            upid: Task ID (e.g., "UPID:pve1:00051DA0:119EAABC:521CCB19:vzcreate:203:root@pam:")

        Returns:
            Data with "running" or "stopped:OK" style status string
        """
        result = self.get(self._node_path(f"tasks/{quote(upid, safe='')}/status"))
        return result.and_then(_task_status)

    def get_templates(self) -> ApiResult:
        """
        Get container templates on local storage.

        Returns:
            Data with a dictionary of template name to storage content record
        """
        return self.get(self._node_path("storage/local/content")).and_then(_by_template_name)

    # Containers (LXC)

    def get_containers(self) -> ApiResult:
        """
        Get all containers on the node.

        Returns:
            Data with a dictionary of vmid to container record
        """
        return self.get(self._node_path("lxc")).and_then(_by_vmid)

    def create_container(self, ostemplate: str, vmid: Any,
                         config: Optional[Mapping[str, Any]] = None) -> ApiResult:
        """
        Create a container from a template on local storage.

        Args:
            ostemplate: Template name without extension
                (e.g., "ubuntu-10.04-standard_10.04-4_i386")
            vmid: ID of the new container
            config: Extra creation options (e.g., {"hostname": "ct.example.com"})

        Returns:
            Data with the task UPID
        """
        body = dict(config or {})
        body["vmid"] = vmid
        body["ostemplate"] = f"{CT_TEMPLATE_PREFIX}{ostemplate}.tar.gz"
        return self.post(self._node_path("lxc"), body)

    def delete_container(self, vmid: Any) -> ApiResult:
        """
        Delete a container.

        Args:
            vmid: Container ID

        Returns:
            Data with the task UPID
        """
        return self.delete(self._node_path(f"lxc/{vmid}"))

    def get_container_status(self, vmid: Any) -> ApiResult:
        """
        Get current status of a container.

        Args:
            vmid: Container ID

        Returns:
            Data with the status dictionary
        """
        return self.get(self._node_path(f"lxc/{vmid}/status/current"))

    def start_container(self, vmid: Any) -> ApiResult:
        """
        Start a container.

        Args:
            vmid: Container ID

        Returns:
            Data with the task UPID
        """
        return self.post(self._node_path(f"lxc/{vmid}/status/start"))

    def stop_container(self, vmid: Any) -> ApiResult:
        """
        Stop a container.

        Args:
            vmid: Container ID

        Returns:
            Data with the task UPID
        """
        return self.post(self._node_path(f"lxc/{vmid}/status/stop"))

    def shutdown_container(self, vmid: Any) -> ApiResult:
        """
        Shutdown a container.

        Args:
            vmid: Container ID

        Returns:
            Data with the task UPID
        """
        return self.post(self._node_path(f"lxc/{vmid}/status/shutdown"))

    def get_container_config(self, vmid: Any) -> ApiResult:
        """
        Get configuration of a container.

        Args:
            vmid: Container ID

        Returns:
            Data with the configuration dictionary
        """
        return self.get(self._node_path(f"lxc/{vmid}/config"))

    def update_container_config(self, vmid: Any, data: Body) -> ApiResult:
        """
        Update container configuration.

        Args:
            vmid: Container ID
            data: Options to set (e.g., {"swap": 2048})

        Returns:
            Data, usually with a None payload
        """
        return self.put(self._node_path(f"lxc/{vmid}/config"), data)

    # Virtual machines (QEMU)

    def get_vms(self) -> ApiResult:
        """
        Get all VMs on the node.

        Returns:
            Data with a dictionary of vmid to VM record
        """
        return self.get(self._node_path("qemu")).and_then(_by_vmid)

    def create_vm(self, template: str, vmid: Any,
                  config: Optional[Mapping[str, Any]] = None) -> ApiResult:
        """
        Create a KVM virtual machine from an ISO on local storage.

        Args:
            template: ISO name without extension
            vmid: ID of the new VM
            config: Extra creation options

        Returns:
            Data with the task UPID
        """
        body = dict(config or {})
        body["vmid"] = vmid
        body["template"] = f"{VM_ISO_PREFIX}{template}.iso"
        body["kvm"] = 1
        return self.post(self._node_path("qemu"), body)

    def delete_vm(self, vmid: Any) -> ApiResult:
        """
        Delete a VM.

        Args:
            vmid: VM ID

        Returns:
            Data with the task UPID
        """
        return self.delete(self._node_path(f"qemu/{vmid}"))

    def get_vm_status(self, vmid: Any) -> ApiResult:
        """
        Get current status of a VM.

        Args:
            vmid: VM ID

        Returns:
            Data with the status dictionary
        """
        return self.get(self._node_path(f"qemu/{vmid}/status/current"))

    def start_vm(self, vmid: Any) -> ApiResult:
        """
        Start a VM.

        Args:
            vmid: VM ID

        Returns:
            Data with the task UPID
        """
        return self.post(self._node_path(f"qemu/{vmid}/status/start"))

    def stop_vm(self, vmid: Any) -> ApiResult:
        """
        Stop a VM.

        Args:
            vmid: VM ID

        Returns:
            Data with the task UPID
        """
        return self.post(self._node_path(f"qemu/{vmid}/status/stop"))

    def shutdown_vm(self, vmid: Any) -> ApiResult:
        """
        Shutdown a VM.

        Args:
            vmid: VM ID

        Returns:
            Data with the task UPID
        """
        return self.post(self._node_path(f"qemu/{vmid}/status/shutdown"))

    def get_vm_config(self, vmid: Any) -> ApiResult:
        """
        Get configuration of a VM.

        Args:
            vmid: VM ID

        Returns:
            Data with the configuration dictionary
        """
        return self.get(self._node_path(f"qemu/{vmid}/config"))

    def update_vm_config(self, vmid: Any, data: Body) -> ApiResult:
        """
        Update VM configuration.

        Args:
            vmid: VM ID
            data: Options to set (e.g., {"memory": 4096})

        Returns:
            Data, usually with a None payload
        """
        return self.put(self._node_path(f"qemu/{vmid}/config"), data)

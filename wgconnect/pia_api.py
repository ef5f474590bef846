"""Client for the PIA WireGuard ``addKey`` endpoint.

The API lives on every WireGuard server at ``https://<hostname>:1337``.
The hostname is only known to the certificate, not to DNS, so requests go
to the server IP while TLS uses the hostname for SNI and verification
against the PIA CA bundle.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3 import PoolManager

from .config.defaults import DEFAULT_API_PORT, DEFAULT_API_TIMEOUT
from .logging_utils import get_logger
from .redact import mask_secret

LOGGER = get_logger(__name__)


class PiaApiError(RuntimeError):
    """Raised when the key exchange fails or returns an unexpected payload."""


class HostPinnedAdapter(HTTPAdapter):
    """Send TLS ``server_hostname`` and check the certificate against ``hostname``.

    Used together with an IP based URL and an explicit ``Host`` header this
    behaves like ``curl --connect-to hostname::ip:``.
    """

    def __init__(self, hostname: str, *args, **kwargs):
        self.hostname = hostname
        super().__init__(*args, **kwargs)

    def init_poolmanager(self, connections, maxsize, block=False, **pool_kwargs):
        pool_kwargs["server_hostname"] = self.hostname
        pool_kwargs["assert_hostname"] = self.hostname
        self.poolmanager = PoolManager(
            num_pools=connections,
            maxsize=maxsize,
            block=block,
            **pool_kwargs,
        )


@dataclass
class AddKeyResponse:
    """Relevant part of the ``addKey`` JSON payload."""

    status: str
    server_key: str
    server_port: int
    peer_ip: str
    server_ip: Optional[str] = None
    server_vip: Optional[str] = None
    peer_pubkey: Optional[str] = None
    dns_servers: List[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "AddKeyResponse":
        if not isinstance(data, dict):
            raise PiaApiError(f"Unexpected addKey response: {json.dumps(data)[:200]}")
        status = str(data.get("status", ""))
        if status != "OK":
            raise PiaApiError(f"Server did not return OK (status={status or 'missing'}).")
        try:
            return cls(
                status=status,
                server_key=str(data["server_key"]),
                server_port=int(data["server_port"]),
                peer_ip=str(data["peer_ip"]),
                server_ip=data.get("server_ip"),
                server_vip=data.get("server_vip"),
                peer_pubkey=data.get("peer_pubkey"),
                dns_servers=list(data.get("dns_servers") or []),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise PiaApiError(f"Unexpected addKey response: {exc}") from exc

    @property
    def primary_dns(self) -> Optional[str]:
        return self.dns_servers[0] if self.dns_servers else None


def endpoint_for(server_ip: str, response: AddKeyResponse) -> str:
    return f"{server_ip}:{response.server_port}"


def _session(hostname: str) -> requests.Session:
    s = requests.Session()
    s.mount("https://", HostPinnedAdapter(hostname))
    s.headers.update({"Host": hostname})
    return s


def add_key(
    server_ip: str,
    hostname: str,
    token: str,
    public_key: str,
    ca_cert: str | Path,
    port: int = DEFAULT_API_PORT,
    timeout: int = DEFAULT_API_TIMEOUT,
) -> AddKeyResponse:
    """Register ``public_key`` with the server and return its tunnel parameters."""

    url = f"https://{server_ip}:{port}/addKey"
    LOGGER.info(
        "Requesting WireGuard key registration",
        extra={"server_ip": server_ip, "hostname": hostname, "token": mask_secret(token)},
    )

    session = _session(hostname)
    try:
        response = session.get(
            url,
            params={"pt": token, "pubkey": public_key},
            verify=str(ca_cert),
            timeout=timeout,
        )
        response.raise_for_status()
    except requests.RequestException as exc:
        message = getattr(exc.response, "text", None) or str(exc)
        raise PiaApiError(f"addKey request failed: {message}") from exc
    except OSError as exc:
        # requests reports an unreadable CA bundle as a plain OSError.
        raise PiaApiError(f"addKey request failed ({ca_cert}): {exc}") from exc
    finally:
        session.close()

    try:
        data = response.json()
    except ValueError as exc:
        raise PiaApiError(f"addKey returned invalid JSON: {response.text[:200]!r}") from exc
    result = AddKeyResponse.from_payload(data)
    LOGGER.info(
        "WireGuard key registered",
        extra={"peer_ip": result.peer_ip, "server_port": result.server_port},
    )
    return result

"""Runtime settings resolved from the environment and command line.

The connection is driven by the same variables the PIA manual-connection
scripts use, so a token obtained with ``get_region_and_token.sh`` can be
passed straight through. Command-line values take precedence.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

from .defaults import DEFAULT_CA_CERT, DEFAULT_CONF_DIR, DEFAULT_INTERFACE

REQUIRED_ENV = {
    "WG_SERVER_IP": "IP that you want to connect to",
    "WG_HOSTNAME": "name of the server, required for ssl",
    "PIA_TOKEN": "your authentication token",
}

OPTIONAL_ENV = {
    "PIA_PF": "enable port forwarding",
    "PIA_DNS": "use the DNS server returned by the API",
    "PAYLOAD_AND_SIGNATURE": "in case you already have a port",
}


class SettingsError(ValueError):
    """Raised when mandatory settings are missing or invalid."""

    def __init__(self, message: str, missing: tuple[str, ...] = ()):
        super().__init__(message)
        self.missing = missing


def _flag(value: Optional[str]) -> bool:
    # Only the literal "true" enables a switch.
    return (value or "").strip().lower() == "true"


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class Settings:
    """Everything needed for one connection attempt."""

    server_ip: str
    hostname: str
    token: str
    use_dns: bool = False
    port_forwarding: bool = False
    payload_and_signature: Optional[str] = None
    conf_dir: Path = Path(DEFAULT_CONF_DIR)
    interface: str = DEFAULT_INTERFACE
    ca_cert: Path = Path(DEFAULT_CA_CERT)

    @property
    def conf_file(self) -> Path:
        return self.conf_dir / f"{self.interface}.conf"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, **overrides) -> "Settings":
        """Build settings from ``env`` (defaults to ``os.environ``).

        Keyword ``overrides`` whose value is not ``None`` replace the
        corresponding environment value; they usually come from argparse.
        """

        env = os.environ if env is None else env
        values = {
            "server_ip": _clean(env.get("WG_SERVER_IP")),
            "hostname": _clean(env.get("WG_HOSTNAME")),
            "token": _clean(env.get("PIA_TOKEN")),
        }
        for key in values:
            if overrides.get(key) is not None:
                values[key] = _clean(overrides[key])

        missing = tuple(
            env_name
            for env_name, field_name in zip(REQUIRED_ENV, ("server_ip", "hostname", "token"))
            if not values[field_name]
        )
        if missing:
            raise SettingsError(
                "缺少必需的环境变量: " + ", ".join(missing),
                missing=missing,
            )

        settings = cls(
            server_ip=values["server_ip"],
            hostname=values["hostname"],
            token=values["token"],
            use_dns=_flag(env.get("PIA_DNS")),
            port_forwarding=_flag(env.get("PIA_PF")),
            payload_and_signature=_clean(env.get("PAYLOAD_AND_SIGNATURE")),
            conf_dir=Path(_clean(env.get("PIA_CONF_DIR")) or DEFAULT_CONF_DIR),
            ca_cert=Path(_clean(env.get("PIA_CA_CERT")) or DEFAULT_CA_CERT),
        )

        extra = {
            key: value
            for key, value in overrides.items()
            if value is not None and key not in values
        }
        for key in ("conf_dir", "ca_cert"):
            if key in extra:
                extra[key] = Path(extra[key])
        return replace(settings, **extra) if extra else settings


def usage_text() -> str:
    """Operator help listing the variables the tool understands."""

    lines = [f"This tool requires {len(REQUIRED_ENV)} env vars:"]
    width = max(len(name) for name in (*REQUIRED_ENV, *OPTIONAL_ENV))
    for name, description in REQUIRED_ENV.items():
        lines.append(f"  {name.ljust(width)} - {description}")
    lines.append("")
    lines.append("You can also specify optional env vars:")
    for name, description in OPTIONAL_ENV.items():
        lines.append(f"  {name.ljust(width)} - {description}")
    lines.append("")
    lines.append("An easy solution is to run get_region_and_token.sh first,")
    lines.append("it will pick the best server and fetch a token for you.")
    return "\n".join(lines)

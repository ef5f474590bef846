"""Thin wrappers around ``wg-quick`` and host checks."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Iterable, List

from .config.defaults import REQUIRED_TOOLS, SUBPROCESS_TEXT_KWARGS
from .logging_utils import get_logger

LOGGER = get_logger(__name__)

IPV6_SYSCTLS = (
    "net/ipv6/conf/all/disable_ipv6",
    "net/ipv6/conf/default/disable_ipv6",
)


class MissingToolError(RuntimeError):
    """Raised when a required binary is not on ``PATH``."""

    def __init__(self, tool: str):
        super().__init__(f"{tool} could not be found. Please install {tool}.")
        self.tool = tool


class WgQuickError(RuntimeError):
    """Raised when ``wg-quick`` fails to bring an interface up."""


def check_tools(names: Iterable[str] = REQUIRED_TOOLS) -> None:
    for name in names:
        if shutil.which(name) is None:
            raise MissingToolError(name)


def _read_flag(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8").strip()
    except OSError:
        return ""


def ipv6_leak_possible(proc_root: str | Path = "/proc") -> bool:
    """Return ``True`` when IPv6 is still enabled on this host.

    The tunnel only carries IPv4, so any enabled IPv6 stack can leak
    traffic outside of it. IPv6 disabled on the kernel command line makes
    ``net/if_inet6`` disappear, which counts as disabled too.
    """

    root = Path(proc_root)
    if not (root / "net" / "if_inet6").exists():
        return False
    return any(_read_flag(root / "sys" / sysctl) != "1" for sysctl in IPV6_SYSCTLS)


def _wg_quick(action: str, interface: str) -> subprocess.CompletedProcess:
    cmd: List[str] = ["wg-quick", action, interface]
    LOGGER.info("Running wg-quick", extra={"action": action, "interface": interface})
    return subprocess.run(cmd, capture_output=True, check=False, **SUBPROCESS_TEXT_KWARGS)


def interface_down(interface: str) -> bool:
    """Bring ``interface`` down; return whether it was actually up.

    A missing interface is the normal case on a first run, so failures are
    only logged.
    """

    result = _wg_quick("down", interface)
    if result.returncode != 0:
        LOGGER.debug(
            "wg-quick down failed",
            extra={"interface": interface, "stderr": (result.stderr or "").strip()},
        )
        return False
    return True


def interface_up(interface: str) -> None:
    result = _wg_quick("up", interface)
    if result.returncode != 0:
        detail = (result.stderr or result.stdout or "").strip()
        raise WgQuickError(f"wg-quick up {interface} failed: {detail[-600:]}")

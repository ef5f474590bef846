"""Hand-off to the external port forwarding procedure.

Port forwarding is negotiated by a separate script once the tunnel is up.
This module only prepares its environment, shows the operator what is
about to run and launches it.
"""

from __future__ import annotations

import os
import shlex
import subprocess
import sys
import time
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional

from .config.defaults import DEFAULT_PF_COUNTDOWN, DEFAULT_PF_SCRIPT
from .config.settings import Settings
from .logging_utils import get_logger

LOGGER = get_logger(__name__)


def handoff_environment(settings: Settings) -> Dict[str, str]:
    """Variables the port forwarding script expects."""

    env = {
        "PIA_TOKEN": settings.token,
        "PF_GATEWAY": settings.server_ip,
        "PF_HOSTNAME": settings.hostname,
    }
    if settings.payload_and_signature:
        env["PAYLOAD_AND_SIGNATURE"] = settings.payload_and_signature
    return env


def handoff_command_hint(settings: Settings, script: str = DEFAULT_PF_SCRIPT) -> str:
    assignments = " \\\n  ".join(
        f"{key}={shlex.quote(value)}" for key, value in handoff_environment(settings).items()
    )
    return f"{assignments} \\\n  {script}"


def countdown(
    seconds: int = DEFAULT_PF_COUNTDOWN,
    sleep: Callable[[float], None] = time.sleep,
    write: Optional[Callable[[str], object]] = None,
) -> None:
    """Print ``5...4...3...2...1...`` one step per second."""

    write = write or sys.stdout.write
    for remaining in range(seconds, 0, -1):
        write(f"{remaining}...")
        sleep(1)
    write("\n")


def run_port_forwarding(
    settings: Settings,
    script: str | Path = DEFAULT_PF_SCRIPT,
    base_env: Optional[Mapping[str, str]] = None,
) -> int:
    """Run ``script`` with the hand-off environment and return its exit code."""

    env = dict(os.environ if base_env is None else base_env)
    env.update(handoff_environment(settings))
    LOGGER.info("Starting port forwarding script", extra={"script": str(script)})
    try:
        result = subprocess.run([str(script)], env=env, check=False)
    except OSError as exc:
        LOGGER.error("Port forwarding script could not be started", extra={"script": str(script), "error": str(exc)})
        return 127
    return result.returncode

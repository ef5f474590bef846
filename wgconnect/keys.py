"""Ephemeral WireGuard key generation through ``wg(8)``."""

from __future__ import annotations

import subprocess
from typing import List

from .config.defaults import SUBPROCESS_TEXT_KWARGS


class KeyGenerationError(RuntimeError):
    """Raised when ``wg genkey`` or ``wg pubkey`` fails."""


def _run_wg(cmd: List[str], stdin: str | None = None) -> str:
    try:
        result = subprocess.run(
            cmd,
            input=stdin,
            capture_output=True,
            check=True,
            **SUBPROCESS_TEXT_KWARGS,
        )
    except FileNotFoundError as exc:
        raise KeyGenerationError(f"未找到 {cmd[0]}，请先安装 wireguard-tools。") from exc
    except subprocess.CalledProcessError as exc:
        detail = (exc.stderr or exc.stdout or "").strip()
        raise KeyGenerationError(f"{' '.join(cmd)} 执行失败: {detail}") from exc

    key = result.stdout.strip()
    if not key:
        raise KeyGenerationError(f"{' '.join(cmd)} 没有输出任何密钥。")
    return key


def generate_private_key() -> str:
    return _run_wg(["wg", "genkey"])


def derive_public_key(private_key: str) -> str:
    # wg pubkey reads the private key on stdin.
    return _run_wg(["wg", "pubkey"], stdin=private_key + "\n")


def generate_keypair() -> tuple[str, str]:
    """Return ``(private_key, public_key)``.

    The keys are never written to disk here; the private key only ends up
    in the tunnel configuration file.
    """

    private_key = generate_private_key()
    return private_key, derive_public_key(private_key)

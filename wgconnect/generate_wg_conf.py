"""Render or update the client WireGuard configuration file.

A missing file is rendered from a fixed template. An existing file is
updated in place with :func:`wgconnect.conf_merge.merge`, so operator
edits (extra options, comments) survive reconnects. Either way the file is
replaced atomically.

Can also be run on its own to turn a saved ``addKey`` JSON response into
a configuration file::

    python -m wgconnect.generate_wg_conf addkey.json --server-ip 10.1.2.3 \
        --private-key-file privkey --output ./pia.conf
"""

from __future__ import annotations

import argparse
import json
import os
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .conf_merge import ConfigDocument, PlacementError, merge, tunnel_updates
from .config.defaults import DEFAULT_ALLOWED_IPS, DEFAULT_KEEPALIVE_SECONDS
from .logging_utils import get_logger
from .pia_api import AddKeyResponse, PiaApiError, endpoint_for

LOGGER = get_logger(__name__)


class ConfigWriteError(RuntimeError):
    """Raised when the configuration file cannot be read or replaced."""


@dataclass(frozen=True)
class TunnelIdentity:
    """Values negotiated for one tunnel."""

    address: str
    private_key: str
    public_key: str
    endpoint: str

    @classmethod
    def from_response(cls, response: AddKeyResponse, private_key: str, server_ip: str) -> "TunnelIdentity":
        return cls(
            address=response.peer_ip,
            private_key=private_key,
            public_key=response.server_key,
            endpoint=endpoint_for(server_ip, response),
        )


def render_interface(identity: TunnelIdentity, dns: Optional[str] = None) -> str:
    lines = ["[Interface]"]
    lines.append(f"Address = {identity.address}")
    lines.append(f"PrivateKey = {identity.private_key}")
    if dns:
        lines.append(f"DNS = {dns}")
    return "\n".join(lines)


def render_peer(
    identity: TunnelIdentity,
    keepalive: int = DEFAULT_KEEPALIVE_SECONDS,
    allowed_ips: str = DEFAULT_ALLOWED_IPS,
) -> str:
    lines = ["[Peer]"]
    lines.append(f"PersistentKeepalive = {keepalive}")
    lines.append(f"PublicKey = {identity.public_key}")
    lines.append(f"AllowedIPs = {allowed_ips}")
    lines.append(f"Endpoint = {identity.endpoint}")
    return "\n".join(lines)


def render_config(
    identity: TunnelIdentity,
    dns: Optional[str] = None,
    keepalive: int = DEFAULT_KEEPALIVE_SECONDS,
    allowed_ips: str = DEFAULT_ALLOWED_IPS,
) -> str:
    """Fresh configuration used when no file exists yet."""

    sections = [render_interface(identity, dns), render_peer(identity, keepalive, allowed_ips)]
    return "\n".join(sections) + "\n"


def build_config_text(
    existing_text: Optional[str],
    identity: TunnelIdentity,
    dns: Optional[str] = None,
) -> str:
    """Return the new file content for ``identity``.

    ``existing_text`` of ``None`` (or an empty file) means there is no
    configuration yet; the merger is bypassed and the template is used.
    :class:`PlacementError` propagates.
    """

    if existing_text is None or not existing_text.strip():
        return render_config(identity, dns)

    updates = tunnel_updates(
        address=identity.address,
        private_key=identity.private_key,
        public_key=identity.public_key,
        endpoint=identity.endpoint,
        dns=dns,
    )
    return merge(ConfigDocument.from_text(existing_text), updates).to_text()


def read_existing(path: Path) -> Optional[str]:
    # Bytes that are not UTF-8 (hand-written comments) round-trip unchanged.
    try:
        return path.read_text(encoding="utf-8", errors="surrogateescape")
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise ConfigWriteError(f"无法读取 WireGuard 配置 {path}: {exc}") from exc


def write_config_atomic(path: Path, text: str, mode: int = 0o600) -> None:
    """Replace ``path`` with ``text`` without ever leaving it half written."""

    if path.is_symlink():
        raise ConfigWriteError(f"拒绝覆盖符号链接: {path}")

    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent), text=True)
    except OSError as exc:
        raise ConfigWriteError(f"无法在 {path.parent} 创建临时文件: {exc}") from exc
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", errors="surrogateescape") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except OSError as exc:
        tmp_path.unlink(missing_ok=True)
        raise ConfigWriteError(f"写入 WireGuard 配置失败 {path}: {exc}") from exc


def update_config_file(path: Path, identity: TunnelIdentity, dns: Optional[str] = None) -> bool:
    """Create or update ``path``; return ``True`` when an existing file was merged."""

    existing = read_existing(path)
    merged = bool(existing and existing.strip())
    text = build_config_text(existing, identity, dns)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigWriteError(f"无法创建配置目录 {path.parent}: {exc}") from exc
    write_config_atomic(path, text)
    LOGGER.info(
        "WireGuard config written",
        extra={"path": str(path), "merged": merged, "dns": bool(dns)},
    )
    return merged


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="根据保存的 addKey JSON 响应生成或更新 WireGuard 配置文件"
    )
    parser.add_argument("input", type=Path, help="addKey 响应 JSON 路径")
    parser.add_argument("--server-ip", required=True, help="WireGuard 服务器 IP")
    parser.add_argument(
        "--private-key-file",
        type=Path,
        required=True,
        help="与注册公钥对应的私钥文件",
    )
    parser.add_argument("--dns", action="store_true", help="写入 API 返回的第一个 DNS 服务器")
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("./pia.conf"),
        help="输出 WireGuard 配置文件路径 (默认: ./pia.conf)",
    )
    return parser.parse_args(argv)


def load_response(path: Path) -> AddKeyResponse:
    with path.open("r", encoding="utf-8") as fp:
        return AddKeyResponse.from_payload(json.load(fp))


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    try:
        response = load_response(args.input)
        private_key = args.private_key_file.read_text(encoding="utf-8").strip()
        identity = TunnelIdentity.from_response(response, private_key, args.server_ip)
        merged = update_config_file(
            args.output,
            identity,
            dns=response.primary_dns if args.dns else None,
        )
    except PlacementError as exc:
        print(f"[错误] 无法更新 {args.output} ({exc})。删除该文件后重新运行即可。", file=sys.stderr)
        return 1
    except (PiaApiError, ConfigWriteError, OSError, ValueError) as exc:
        print(f"[错误] {exc}", file=sys.stderr)
        return 1

    action = "已更新" if merged else "已生成"
    print(f"[信息] {action} WireGuard 配置: {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""pytest 配置和共享 fixtures。pytest configuration and shared fixtures."""

from __future__ import annotations

import sys
import tempfile
from pathlib import Path
from typing import Any, Generator

import pytest

# 添加项目根目录到路径，以便导入 wgconnect 与 main 模块
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from wgconnect.config import Settings
from wgconnect.generate_wg_conf import TunnelIdentity

SERVER_KEY = "hV4WnEbyk2G5UWEHoGHKfJZnZ0ZG+PJdYlZIgJz0U3g="
PRIVATE_KEY = "gIBpDi8EoB31AKz0ICIbgb0gHJqOwb6nUrYyTtl4R1E="
PUBLIC_KEY = "Xk4iO0G6g0Ti7fgDaUqBvq2I5dUy2dR1ZtYq4wxw2gU="


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """临时目录 fixture。Temporary directory fixture."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def addkey_payload() -> dict[str, Any]:
    """addKey 接口示例响应。Sample addKey API response."""
    return {
        "status": "OK",
        "server_key": SERVER_KEY,
        "server_port": 1337,
        "server_ip": "10.0.0.1",
        "server_vip": "10.0.0.1",
        "peer_ip": "10.13.128.44",
        "peer_pubkey": PUBLIC_KEY,
        "dns_servers": ["10.0.0.243", "10.0.0.242"],
    }


@pytest.fixture
def identity() -> TunnelIdentity:
    """示例隧道身份。Sample tunnel identity."""
    return TunnelIdentity(
        address="10.13.128.44",
        private_key=PRIVATE_KEY,
        public_key=SERVER_KEY,
        endpoint="181.41.206.5:1337",
    )


@pytest.fixture
def existing_conf() -> str:
    """带有自定义内容的现有配置。Existing config with operator edits."""
    return (
        "# managed by hand\n"
        "[Interface]\n"
        "Address = 10.13.1.1\n"
        "PrivateKey = oldprivate\n"
        "PostUp = echo up\n"
        "\n"
        "[Peer]\n"
        "PersistentKeepalive = 25\n"
        "PublicKey = oldpublic\n"
        "AllowedIPs = 0.0.0.0/0\n"
        "Endpoint = 1.2.3.4:1337\n"
    )


@pytest.fixture
def settings(temp_dir: Path) -> Settings:
    """示例连接设置。Sample connection settings."""
    return Settings(
        server_ip="181.41.206.5",
        hostname="denver401",
        token="c2VjcmV0LXRva2VuLXZhbHVl",
        conf_dir=temp_dir / "wireguard",
        ca_cert=temp_dir / "ca.rsa.4096.crt",
    )

"""主程序入口：使用 PIA 令牌连接 WireGuard 服务器。

本模块承担以下职责：
1. 检查 wg-quick / wg 是否可用，并在 IPv6 未禁用时给出泄漏提示。
2. 从环境变量与命令行参数读取服务器 IP、主机名与令牌，生成临时密钥并调用 addKey 接口。
3. 写入（或合并更新）/etc/wireguard/pia.conf，启动 pia 接口，并按需移交端口转发脚本。
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from pathlib import Path
from typing import Callable, Optional

if sys.version_info < (3, 9):
    raise SystemExit(
        "当前 Python 解释器版本过低。本工具至少需要 Python 3.9，请改用 python3 运行。"
    )

from wgconnect.conf_merge import PlacementError
from wgconnect.config import (
    DEFAULT_PF_COUNTDOWN,
    DEFAULT_PF_SCRIPT,
    REQUIRED_TOOLS,
    Settings,
    SettingsError,
    usage_text,
)
from wgconnect.generate_wg_conf import ConfigWriteError, TunnelIdentity, update_config_file
from wgconnect.keys import KeyGenerationError, generate_keypair
from wgconnect.logging_utils import get_logger, setup_logging
from wgconnect.pia_api import PiaApiError, add_key
from wgconnect.port_forwarding import countdown, handoff_command_hint, run_port_forwarding
from wgconnect.redact import redact_text
from wgconnect.wg_quick import (
    MissingToolError,
    WgQuickError,
    check_tools,
    interface_down,
    interface_up,
    ipv6_leak_possible,
)

BLUE = "\033[34m"
GREEN = "\033[32m"
RED = "\033[31m"
YELLOW = "\033[33m"
RESET = "\033[0m"

LOGGER = get_logger("main")


def _use_color() -> bool:
    """仅在交互式终端中输出颜色。Only colorize when stdout is a terminal."""

    return sys.stdout.isatty() and os.environ.get("TERM", "") != "dumb"


def _colorize(message: str, color: str) -> str:
    """用 ANSI 颜色编码包装文本。Return ``message`` wrapped in ANSI color codes."""

    if not _use_color():
        return message
    return f"{color}{message}{RESET}"


def logwrite(message: str, *, color: str | None = None) -> None:
    """打印信息（可选颜色）并写入日志。Print ``message`` (optionally colorized) and log it."""

    text = _colorize(message, color) if color else message
    print(text)
    LOGGER.debug(redact_text(message))


def log_info(message: str) -> None:
    logwrite(message)


def log_success(message: str) -> None:
    logwrite(message, color=GREEN)


def log_warning(message: str) -> None:
    logwrite(message, color=YELLOW)


def log_error(message: str) -> None:
    logwrite(message, color=RED)


def log_section(title: str) -> None:
    """打印分隔线用于标记流程步骤。Print a visual separator for a workflow step."""

    divider = "=" * 24
    logwrite(divider, color=BLUE)
    logwrite(title, color=BLUE)


def warn_ipv6() -> None:
    log_warning("⚠️ 检测到 IPv6 仍处于启用状态，PIA 暂不支持 IPv6，流量可能绕过 VPN。")
    log_warning("   建议执行：")
    log_warning("   sysctl -w net.ipv6.conf.all.disable_ipv6=1")
    log_warning("   sysctl -w net.ipv6.conf.default.disable_ipv6=1")


def handle_port_forwarding(
    settings: Settings,
    *,
    script: str = DEFAULT_PF_SCRIPT,
    countdown_seconds: int = DEFAULT_PF_COUNTDOWN,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """按需启动端口转发脚本。Run the port forwarding hand-off when enabled."""

    hint = handoff_command_hint(settings, script)
    if not settings.port_forwarding:
        log_info("如需同时启用端口转发，可以稍后执行：")
        log_success(hint)
        log_info("所选服务器必须支持端口转发，否则该脚本会失败。")
        return 0

    log_info("已启用 PIA_PF=true，即将开始端口转发：")
    countdown(countdown_seconds, sleep=sleep)
    log_info("执行以下命令启用端口转发：")
    log_success(hint)
    return run_port_forwarding(settings, script)


def connect(
    settings: Settings,
    *,
    pf_script: str = DEFAULT_PF_SCRIPT,
    countdown_seconds: int = DEFAULT_PF_COUNTDOWN,
) -> int:
    """完成一次连接流程。Run key exchange, config write and interface activation."""

    log_section("生成临时 WireGuard 密钥")
    private_key, public_key = generate_keypair()

    log_section("注册公钥")
    log_info(f"→ 正在连接 {settings.server_ip} 上的 PIA WireGuard API...")
    response = add_key(
        settings.server_ip,
        settings.hostname,
        settings.token,
        public_key,
        settings.ca_cert,
    )

    log_info(f"→ 尝试关闭已存在的 {settings.interface} 连接...")
    if interface_down(settings.interface):
        log_success(f"已关闭旧的 {settings.interface} 连接。")

    dns: Optional[str] = None
    if settings.use_dns:
        dns = response.primary_dns
        if dns:
            log_warning(f"→ 将 DNS 设置为 {dns}。若系统缺少 resolvconf，接口启动会失败；")
            log_warning("  遇到问题时请去掉 PIA_DNS 后重试。")
        else:
            log_warning("⚠️ API 未返回 DNS 服务器，跳过 DNS 设置。")

    log_section("写入 WireGuard 配置")
    identity = TunnelIdentity.from_response(response, private_key, settings.server_ip)
    log_info(f"→ 正在写入 {settings.conf_file}...")
    merged = update_config_file(settings.conf_file, identity, dns)
    log_success("✅ 已更新现有配置。" if merged else "✅ 已生成新配置。")

    log_section("启动 WireGuard 接口")
    interface_up(settings.interface)
    log_success("✅ WireGuard 接口已创建，现在流量将通过 VPN。")
    log_info("断开 VPN 请执行：")
    log_success(f"wg-quick down {settings.interface}")

    return handle_port_forwarding(
        settings,
        script=pf_script,
        countdown_seconds=countdown_seconds,
    )


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pia-wg-connect",
        description="使用 PIA 令牌连接 WireGuard 服务器。未指定的参数从环境变量读取。",
        epilog=usage_text(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--server-ip", help="服务器 IP (WG_SERVER_IP)")
    parser.add_argument("--hostname", help="服务器主机名，用于 TLS 校验 (WG_HOSTNAME)")
    parser.add_argument("--token", help="PIA 认证令牌 (PIA_TOKEN)")
    parser.add_argument("--dns", action="store_true", default=None, help="使用 PIA 提供的 DNS (PIA_DNS=true)")
    parser.add_argument(
        "--port-forwarding",
        action="store_true",
        default=None,
        help="连接后启用端口转发 (PIA_PF=true)",
    )
    parser.add_argument("--conf-dir", type=Path, help="WireGuard 配置目录 (默认 /etc/wireguard)")
    parser.add_argument("--interface", help="WireGuard 接口名 (默认 pia)")
    parser.add_argument("--ca-cert", type=Path, help="PIA CA 证书路径 (默认 ca.rsa.4096.crt)")
    parser.add_argument("--pf-script", default=DEFAULT_PF_SCRIPT, help="端口转发脚本路径")
    parser.add_argument(
        "--pf-countdown",
        type=int,
        default=DEFAULT_PF_COUNTDOWN,
        help="启动端口转发前的倒计时秒数",
    )
    parser.add_argument("--log-dir", type=Path, help="日志文件目录 (默认仅输出到终端)")
    parser.add_argument("--verbose", "-v", action="store_true", help="输出调试日志")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_dir, level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        check_tools(REQUIRED_TOOLS)
    except MissingToolError as exc:
        log_error(f"❌ {exc}")
        return 1

    if ipv6_leak_possible():
        warn_ipv6()

    try:
        settings = Settings.from_env(
            server_ip=args.server_ip,
            hostname=args.hostname,
            token=args.token,
            use_dns=args.dns,
            port_forwarding=args.port_forwarding,
            conf_dir=args.conf_dir,
            interface=args.interface,
            ca_cert=args.ca_cert,
        )
    except SettingsError as exc:
        log_error(f"❌ {exc}")
        print(usage_text())
        return 1

    try:
        return connect(
            settings,
            pf_script=args.pf_script,
            countdown_seconds=args.pf_countdown,
        )
    except PlacementError as exc:
        log_error(
            f"❌ 无法更新 WireGuard 配置 ({exc.field_name})。"
            f"删除 {settings.conf_file} 后重新运行即可。"
        )
        return 1
    except (KeyGenerationError, PiaApiError, ConfigWriteError, WgQuickError) as exc:
        log_error(f"❌ {exc}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

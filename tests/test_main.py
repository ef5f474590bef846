"""主流程测试。Tests for the connection workflow in ``main``."""

from __future__ import annotations

from contextlib import ExitStack
from pathlib import Path
from unittest.mock import patch

import pytest

import main as cli
from wgconnect.conf_merge import PlacementError
from wgconnect.pia_api import AddKeyResponse, PiaApiError
from wgconnect.wg_quick import MissingToolError, WgQuickError

ENV = {
    "WG_SERVER_IP": "181.41.206.5",
    "WG_HOSTNAME": "denver401",
    "PIA_TOKEN": "secret-token",
}


@pytest.fixture
def workflow(addkey_payload):
    """替换所有外部协作者。Patch every external collaborator used by ``main``."""

    with ExitStack() as stack:
        mocks = {
            "check_tools": stack.enter_context(patch.object(cli, "check_tools")),
            "ipv6": stack.enter_context(patch.object(cli, "ipv6_leak_possible", return_value=False)),
            "keys": stack.enter_context(patch.object(cli, "generate_keypair", return_value=("priv", "pub"))),
            "add_key": stack.enter_context(
                patch.object(cli, "add_key", return_value=AddKeyResponse.from_payload(addkey_payload))
            ),
            "down": stack.enter_context(patch.object(cli, "interface_down", return_value=False)),
            "up": stack.enter_context(patch.object(cli, "interface_up")),
            "pf": stack.enter_context(patch.object(cli, "run_port_forwarding", return_value=0)),
        }
        yield mocks


def _run(argv: list[str], env: dict[str, str]) -> int:
    with patch.dict("os.environ", env, clear=True):
        return cli.main(argv)


class TestMain:
    """端到端流程测试。End-to-end workflow tests."""

    def test_fresh_connection(self, workflow, temp_dir: Path):
        code = _run(["--conf-dir", str(temp_dir)], ENV)

        assert code == 0
        text = (temp_dir / "pia.conf").read_text(encoding="utf-8")
        assert "PrivateKey = priv" in text
        assert "Endpoint = 181.41.206.5:1337" in text
        assert "DNS" not in text
        workflow["add_key"].assert_called_once()
        assert workflow["add_key"].call_args[0][:4] == ("181.41.206.5", "denver401", "secret-token", "pub")
        workflow["down"].assert_called_once_with("pia")
        workflow["up"].assert_called_once_with("pia")
        workflow["pf"].assert_not_called()

    def test_reconnect_merges_existing_config(self, workflow, temp_dir: Path, existing_conf: str):
        conf = temp_dir / "pia.conf"
        conf.write_text(existing_conf, encoding="utf-8")

        code = _run(["--conf-dir", str(temp_dir), "--dns"], ENV)

        assert code == 0
        text = conf.read_text(encoding="utf-8")
        assert "PostUp = echo up" in text
        assert "PrivateKey = priv" in text
        assert "DNS = 10.0.0.243" in text

    def test_placement_failure_keeps_file(self, workflow, temp_dir: Path):
        conf = temp_dir / "pia.conf"
        conf.write_text("[Interface]\nAddress = 1\n", encoding="utf-8")

        code = _run(["--conf-dir", str(temp_dir)], ENV)

        assert code == 1
        assert conf.read_text(encoding="utf-8") == "[Interface]\nAddress = 1\n"
        workflow["up"].assert_not_called()

    def test_non_utf8_config_is_merged(self, workflow, temp_dir: Path, existing_conf: str):
        conf = temp_dir / "pia.conf"
        conf.write_bytes(b"# caf\xe9\n" + existing_conf.encode("utf-8"))

        code = _run(["--conf-dir", str(temp_dir)], ENV)

        assert code == 0
        data = conf.read_bytes()
        assert data.startswith(b"# caf\xe9\n")
        assert b"PrivateKey = priv\n" in data
        workflow["up"].assert_called_once_with("pia")

    def test_config_dir_not_creatable(self, workflow, temp_dir: Path):
        with patch("wgconnect.generate_wg_conf.Path.mkdir", side_effect=PermissionError("denied")):
            code = _run(["--conf-dir", str(temp_dir / "wireguard")], ENV)

        assert code == 1
        workflow["up"].assert_not_called()

    def test_port_forwarding_handoff(self, workflow, temp_dir: Path):
        with patch.object(cli, "countdown") as countdown:
            code = _run(["--conf-dir", str(temp_dir), "--pf-countdown", "0"], {**ENV, "PIA_PF": "true"})

        assert code == 0
        countdown.assert_called_once()
        settings = workflow["pf"].call_args[0][0]
        assert settings.port_forwarding is True
        assert workflow["pf"].call_args[0][1] == "./port_forwarding.sh"

    def test_port_forwarding_exit_code_propagates(self, workflow, temp_dir: Path):
        workflow["pf"].return_value = 3
        with patch.object(cli, "countdown"):
            code = _run(["--conf-dir", str(temp_dir), "--port-forwarding"], ENV)
        assert code == 3

    def test_missing_settings(self, workflow, capsys):
        code = _run([], {"WG_HOSTNAME": "denver401"})

        assert code == 1
        assert "WG_SERVER_IP" in capsys.readouterr().out
        workflow["add_key"].assert_not_called()

    def test_missing_tool(self, workflow):
        workflow["check_tools"].side_effect = MissingToolError("wg-quick")
        assert _run([], ENV) == 1
        workflow["keys"].assert_not_called()

    def test_api_failure(self, workflow, temp_dir: Path):
        workflow["add_key"].side_effect = PiaApiError("Server did not return OK")
        assert _run(["--conf-dir", str(temp_dir)], ENV) == 1
        assert not (temp_dir / "pia.conf").exists()
        workflow["down"].assert_not_called()

    def test_interface_up_failure(self, workflow, temp_dir: Path):
        workflow["up"].side_effect = WgQuickError("wg-quick up pia failed")
        assert _run(["--conf-dir", str(temp_dir)], ENV) == 1

    def test_ipv6_warning(self, workflow, temp_dir: Path, capsys):
        workflow["ipv6"].return_value = True
        _run(["--conf-dir", str(temp_dir)], ENV)
        assert "disable_ipv6" in capsys.readouterr().out


def test_placement_error_message():
    assert str(PlacementError("DNS")) == "could not place field DNS"

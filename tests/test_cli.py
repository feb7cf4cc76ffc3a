from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from omnictl import cli
from omnictl.core.errors import TransportWriteError
from omnictl.core.model import Channel

from conftest import FakeLink, FakeTransport

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_xdg(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))


@pytest.fixture
def fake_link(monkeypatch: pytest.MonkeyPatch) -> FakeLink:
    link = FakeLink()
    monkeypatch.setattr(cli, "BLEGATTTransport", lambda: FakeTransport(link))
    return link


def test_profiles_command() -> None:
    result = runner.invoke(cli.app, ["profiles"])
    assert result.exit_code == 0
    assert "omni_robot: Omni Robot (ESP32) (advertised as 'Omni Robot')" in result.stdout


def test_config_command(fake_link: FakeLink) -> None:
    fake_link.config_payload = b'{"mapping":[2,1,3,4],"invert":[false,true,false,false]}'
    result = runner.invoke(cli.app, ["config"])
    assert result.exit_code == 0
    assert "position 0 -> motor 2" in result.stdout
    assert "position 1 -> motor 1 (inverted)" in result.stdout
    assert fake_link.disconnect_calls == 1


def test_config_command_json(fake_link: FakeLink) -> None:
    result = runner.invoke(cli.app, ["config", "--json"])
    assert result.exit_code == 0
    assert '{"mapping": [1, 2, 3, 4], "invert": [false, false, false, false]}' in result.stdout


def test_map_command_with_save(fake_link: FakeLink) -> None:
    result = runner.invoke(cli.app, ["map", "0", "3", "--save"])
    assert result.exit_code == 0
    assert "Sent set_map:0:3 and save_config" in result.stdout
    assert fake_link.text_written(Channel.COMMAND) == ["set_map:0:3", "save_config"]


def test_invert_command(fake_link: FakeLink) -> None:
    result = runner.invoke(cli.app, ["invert", "2", "TRUE"])
    assert result.exit_code == 0
    assert fake_link.text_written(Channel.COMMAND) == ["set_inv:2:true"]


def test_invert_command_rejects_non_bool(fake_link: FakeLink) -> None:
    result = runner.invoke(cli.app, ["invert", "2", "yes"])
    assert result.exit_code == 1
    assert "Error: Invert value must be true or false" in result.stderr
    assert fake_link.writes == []


def test_send_and_test_commands(fake_link: FakeLink) -> None:
    assert runner.invoke(cli.app, ["send", "forward"]).exit_code == 0
    assert runner.invoke(cli.app, ["test", "1", "bwd"]).exit_code == 0
    assert fake_link.text_written(Channel.COMMAND) == ["forward"]
    assert fake_link.text_written(Channel.TEST) == ["test_1_bwd"]


def test_speed_command_reports_clamped_value(fake_link: FakeLink) -> None:
    result = runner.invoke(cli.app, ["speed", "300"])
    assert result.exit_code == 0
    assert "Speed set to 255" in result.stdout
    assert fake_link.written(Channel.SPEED) == [b"\xff"]


def test_drive_command_stops_afterwards(fake_link: FakeLink) -> None:
    result = runner.invoke(cli.app, ["drive", "0", "255", "--duration", "0"])
    assert result.exit_code == 0
    assert fake_link.written(Channel.JOYSTICK) == [bytes([0, 127])]
    assert fake_link.text_written(Channel.COMMAND) == ["stop"]


def test_reset_command(fake_link: FakeLink) -> None:
    result = runner.invoke(cli.app, ["reset", "--no-save"])
    assert result.exit_code == 0
    assert "save_config" not in fake_link.text_written(Channel.COMMAND)
    assert len(fake_link.text_written(Channel.COMMAND)) == 8


def test_unknown_motion_command_is_clean(fake_link: FakeLink) -> None:
    result = runner.invoke(cli.app, ["send", "jump"])
    assert result.exit_code == 1
    assert "Error: Unknown motion command 'jump'" in result.stderr
    assert "Traceback" not in result.stdout
    assert "Traceback" not in result.stderr


def test_write_failure_exits_with_error(fake_link: FakeLink) -> None:
    fake_link.write_error = TransportWriteError("GATT busy")
    result = runner.invoke(cli.app, ["send", "forward"])
    assert result.exit_code == 1
    assert "Error: GATT busy" in result.stderr
    assert "Sent forward" not in result.stdout
    assert fake_link.disconnect_calls == 1


def test_speed_write_failure_exits_with_error(fake_link: FakeLink) -> None:
    fake_link.write_error = TransportWriteError("GATT busy")
    result = runner.invoke(cli.app, ["speed", "100"])
    assert result.exit_code == 1
    assert "Speed set to" not in result.stdout


def test_device_not_found_is_clean(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "BLEGATTTransport", lambda: FakeTransport(device_found=False))
    result = runner.invoke(cli.app, ["save"])
    assert result.exit_code == 1
    assert "Error: No device advertising 'Omni Robot' was found" in result.stderr


def test_missing_channel_is_clean(monkeypatch: pytest.MonkeyPatch) -> None:
    link = FakeLink(missing_channels=(Channel.CONFIG,))
    monkeypatch.setattr(cli, "BLEGATTTransport", lambda: FakeTransport(link))
    result = runner.invoke(cli.app, ["config"])
    assert result.exit_code == 1
    assert "Error: Channel 'config'" in result.stderr

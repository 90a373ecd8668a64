# tests/test_core.py
from dataclasses import replace
from unittest.mock import MagicMock, patch

import pytest

from rcon_core import (
    AuthenticationRejected,
    ConfigError,
    ConnectError,
    CoreStatus,
    MissingTrailerError,
    RconCore,
    SessionPhase,
    StateError,
)
from rcon_core.state import HandshakeState


@pytest.fixture
def mock_deps():
    with (
        patch("rcon_core.core.NetworkClient") as nc,
        patch("rcon_core.core.SourceEngineProtocol") as proto,
    ):
        nc.return_value.is_connected = False
        yield nc, proto


def _authenticate(core: RconCore) -> None:
    """模拟协议层完成握手 (Mock 的协议不会更新状态)"""
    core.login()
    core._state.handshake = HandshakeState.AUTHENTICATED


def test_core_login_delegation(valid_config, mock_deps):
    """测试 Core.login 先连接，再委托给 Protocol"""
    mock_nc_cls, mock_proto_cls = mock_deps
    mock_proto_cls.return_value.login.return_value = True

    statuses = []
    core = RconCore(valid_config, status_callback=lambda s, m: statuses.append(s))

    assert core.login() is True
    mock_nc_cls.return_value.connect.assert_called_once()
    mock_proto_cls.return_value.login.assert_called_once()
    assert core.state.status == CoreStatus.READY
    assert statuses == [
        CoreStatus.IDLE,
        CoreStatus.CONNECTING,
        CoreStatus.AUTHENTICATING,
        CoreStatus.READY,
    ]


def test_core_connect_error_phase(valid_config, mock_deps):
    mock_nc_cls, _ = mock_deps
    mock_nc_cls.return_value.connect.side_effect = ConnectError("refused")

    core = RconCore(valid_config)
    with pytest.raises(ConnectError) as exc:
        core.login()

    assert exc.value.phase == SessionPhase.CONNECT
    assert core.state.status == CoreStatus.ERROR
    assert "refused" in core.state.last_error


def test_core_auth_rejected_phase(valid_config, mock_deps):
    _, mock_proto_cls = mock_deps
    mock_proto_cls.return_value.login.side_effect = AuthenticationRejected()

    core = RconCore(valid_config)
    with pytest.raises(AuthenticationRejected) as exc:
        core.login()

    assert exc.value.phase == SessionPhase.AUTH
    assert core.state.status == CoreStatus.ERROR


def test_core_execute_before_login(valid_config, mock_deps):
    core = RconCore(valid_config)
    with pytest.raises(StateError) as exc:
        core.execute("status")
    assert exc.value.phase == SessionPhase.COMMAND


def test_core_execute_delegation(valid_config, mock_deps):
    _, mock_proto_cls = mock_deps
    mock_proto_cls.return_value.execute.return_value = "output"

    core = RconCore(valid_config)
    _authenticate(core)

    assert core.execute("status") == "output"
    mock_proto_cls.return_value.execute.assert_called_once_with("status")


def test_core_execute_error_is_terminal(valid_config, mock_deps):
    _, mock_proto_cls = mock_deps
    mock_proto_cls.return_value.execute.side_effect = MissingTrailerError("no newline")

    core = RconCore(valid_config)
    _authenticate(core)

    with pytest.raises(MissingTrailerError) as exc:
        core.execute("status")
    assert exc.value.phase == SessionPhase.COMMAND
    assert core.state.status == CoreStatus.ERROR

    with pytest.raises(StateError):
        core.execute("status")


def test_core_execute_all_with_delay(valid_config, mock_deps):
    _, mock_proto_cls = mock_deps
    mock_proto_cls.return_value.execute.side_effect = lambda cmd: cmd.upper()

    core = RconCore(replace(valid_config, command_delay=0.5))
    _authenticate(core)

    with patch("rcon_core.core.time.sleep") as mock_sleep:
        results = list(core.execute_all(["a", "b", "c"]))

    assert results == [("a", "A"), ("b", "B"), ("c", "C")]
    assert mock_sleep.call_count == 2
    mock_sleep.assert_called_with(0.5)


def test_core_stop_closes_connection(valid_config, mock_deps):
    mock_nc_cls, _ = mock_deps

    with RconCore(valid_config) as core:
        pass

    mock_nc_cls.return_value.close.assert_called_once()
    assert core.state.status == CoreStatus.CLOSED

    # 重复调用无副作用
    core.stop()
    mock_nc_cls.return_value.close.assert_called_once()


def test_core_connect_after_stop(valid_config, mock_deps):
    core = RconCore(valid_config)
    core.stop()
    with pytest.raises(StateError):
        core.connect()


def test_core_listener_errors_are_isolated(valid_config, mock_deps):
    bad = MagicMock(side_effect=RuntimeError("boom"))
    good = MagicMock()

    core = RconCore(valid_config)
    core.add_listener(bad)
    core.add_listener(good)
    core.stop()

    good.assert_called_once_with(CoreStatus.CLOSED, "已停止")

    core.remove_listener(good)
    assert good not in core._listeners


def test_core_state_is_copy(valid_config, mock_deps):
    core = RconCore(valid_config)
    snapshot = core.state
    snapshot.commands_executed = 99
    assert core.state.commands_executed == 0


def test_core_unsupported_protocol(valid_config):
    with pytest.raises(ConfigError, match="不支持的协议"):
        RconCore(replace(valid_config, protocol="MINECRAFT"))


def test_core_probe_server(valid_config, mock_deps):
    core = RconCore(valid_config)
    with patch("rcon_core.core.socket.create_connection") as mock_conn:
        assert core.probe_server() is True
        mock_conn.side_effect = OSError("unreachable")
        assert core.probe_server() is False

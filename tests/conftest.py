# tests/conftest.py
import socket
import struct
import sys
import threading
from dataclasses import replace
from pathlib import Path

import pytest

# 确保 src 目录在 sys.path 中
src_path = Path(__file__).resolve().parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from rcon_core.config import ENV_MAP, RconConfig


@pytest.fixture
def valid_config():
    """[Fixture] 返回一个指向本机的 Source RCON 配置对象。"""
    return RconConfig(
        address="127.0.0.1",
        port=27015,
        password="secret",
        protocol="SOURCE",
        timeout=2.0,
        max_packet_size=4096,
        encoding="ascii",
        auth_empty_response=True,
        strip_status_line=True,
        command_delay=0.0,
    )


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """[Fixture] 清空 RCON_ 环境变量，并切换到没有 .env 的临时目录。

    先 setenv 再 delenv，保证测试中 load_dotenv 写入的变量在结束时也被还原。
    """
    for suffix in ENV_MAP.values():
        monkeypatch.setenv(f"RCON_{suffix}", "placeholder")
        monkeypatch.delenv(f"RCON_{suffix}")
    monkeypatch.chdir(tmp_path)
    return tmp_path


def server_packet(request_id: int, kind: int, body: str) -> bytes:
    """按服务器的习惯构造响应包: Size 同时计入两个终止符，无额外帧终止符。"""
    data = body.encode("ascii") + b"\x00\x00"
    return struct.pack("<III", 8 + len(data), request_id, kind) + data


class FakeSourceServer:
    """单连接的 Source RCON 模拟服务器 (后台线程)。

    - AUTH: 先回一个空 RESPONSE_VALUE，再回 AUTH_RESPONSE (两个包一次性写出)。
      密码正确时 ID 为 auth_id，否则为 0xFFFFFFFF。
    - EXECCOMMAND: 回显 "<text>\\n" 并追加 "rcon from ..." 状态行。
    """

    def __init__(self, password: str = "secret", auth_id: int = 1234, empty_ack: bool = True):
        self.password = password
        self.auth_id = auth_id
        self.empty_ack = empty_ack
        self.received: list[tuple[int, int, str]] = []

        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.listen(1)
        self.sock.settimeout(5)
        self.port = self.sock.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, daemon=True)

    def start(self) -> "FakeSourceServer":
        self._thread.start()
        return self

    def close(self) -> None:
        self.sock.close()
        self._thread.join(timeout=5)

    @staticmethod
    def _recv_exact(conn: socket.socket, n: int) -> bytes:
        data = b""
        while len(data) < n:
            chunk = conn.recv(n - len(data))
            if not chunk:
                raise EOFError
            data += chunk
        return data

    def _serve(self) -> None:
        try:
            conn, (peer_ip, peer_port) = self.sock.accept()
        except OSError:
            return

        with conn:
            conn.settimeout(5)
            while True:
                try:
                    (size,) = struct.unpack("<I", self._recv_exact(conn, 4))
                    # 客户端的 Size 不含帧终止符，这里多读 1 字节
                    payload = self._recv_exact(conn, size + 1)
                except (EOFError, OSError):
                    return

                request_id, kind = struct.unpack_from("<II", payload)
                body = payload[8 : size - 1].decode("ascii")
                self.received.append((request_id, kind, body))

                if kind == 3:
                    reply = b""
                    if self.empty_ack:
                        reply += server_packet(request_id, 0, "")
                    reply_id = self.auth_id if body == self.password else 0xFFFFFFFF
                    reply += server_packet(reply_id, 2, "")
                    conn.sendall(reply)
                elif kind == 2:
                    status = f'rcon from "{peer_ip}:{peer_port}": command "{body}"'
                    conn.sendall(server_packet(request_id, 0, f"{body}\n{status}\n"))


@pytest.fixture
def fake_server():
    """[Fixture] 启动一个模拟服务器，测试结束后关闭。"""
    server = FakeSourceServer().start()
    yield server
    server.close()


@pytest.fixture
def server_config(fake_server, valid_config):
    """[Fixture] 指向模拟服务器的配置。"""
    return replace(valid_config, port=fake_server.port)

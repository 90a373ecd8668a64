# src/rcon_core/network.py
"""
RCON 核心库 - 网络模块 (Network)

封装 TCP Socket 的连接、发送和接收逻辑。
该模块屏蔽了底层 Socket 的复杂性，向协议层提供纯粹的 bytes 收发接口，
不理解任何协议结构。
"""

import logging
import socket

from .config import RconConfig
from .exceptions import ConnectError, NetworkError, ReadError, WriteError

logger = logging.getLogger(__name__)


class NetworkClient:
    """封装阻塞式 TCP 操作的客户端。

    连接由本对象的持有者 (RconCore 或调用方) 独占并负责关闭，
    协议层只调用 send/receive。
    """

    def __init__(self, config: RconConfig, sock: socket.socket | None = None):
        """初始化网络客户端。

        Args:
            config: 全局配置对象。
            sock: 可选的、已经连接好的 socket。
        """
        self.config = config
        self.sock: socket.socket | None = sock

    @property
    def is_connected(self) -> bool:
        return self.sock is not None

    def connect(self) -> None:
        """建立到远程服务器的 TCP 连接。

        Raises:
            ConnectError: 拨号失败 (拒绝连接、超时、地址不可达)。
        """
        if self.sock is not None:
            logger.debug("Socket 已连接，跳过 connect")
            return

        target = (self.config.address, self.config.port)
        timeout = self.config.timeout or None
        try:
            self.sock = socket.create_connection(target, timeout=timeout)
        except OSError as e:
            raise ConnectError(f"连接服务器失败 {target[0]}:{target[1]}: {e}") from e
        logger.debug(f"TCP 连接已建立: {target}")

    def attach(self, sock: socket.socket) -> None:
        """接管一个由外部建立的 socket。"""
        if self.sock is not None and self.sock is not sock:
            raise NetworkError("已持有另一个连接")
        self.sock = sock

    def send(self, packet: bytes) -> None:
        """发送一个完整的数据包。

        只调用一次 send，写入字节数与包长不一致即视为失败，不做重试。

        Raises:
            WriteError: 发送失败或短写。
        """
        if self.sock is None:
            raise WriteError("Socket 未连接")

        try:
            written = self.sock.send(packet)
        except OSError as e:
            raise WriteError(f"发送失败: {e}") from e

        if written != len(packet):
            raise WriteError(f"写入字节数不匹配: {written}/{len(packet)}")
        # 认证包里有明文密码，这里只记录长度
        logger.debug(f"send {written}B")

    def receive(self) -> bytes:
        """执行一次读取，最多 max_packet_size 字节。

        Returns:
            bytes: 本次读取到的原始数据 (非空)。

        Raises:
            ReadError: 读取超时、I/O 错误或对端关闭连接。
        """
        if self.sock is None:
            raise ReadError("Socket 未连接")

        try:
            data = self.sock.recv(self.config.max_packet_size)
        except socket.timeout:
            raise ReadError(f"接收超时 ({self.config.timeout}s)") from None
        except OSError as e:
            raise ReadError(f"接收错误: {e}") from e

        if not data:
            raise ReadError("连接已被对端关闭")
        logger.debug(f"recv {len(data)}B: {data.hex()}")
        return data

    def close(self) -> None:
        """关闭 Socket (可重复调用)。"""
        if self.sock is not None:
            try:
                self.sock.close()
            finally:
                self.sock = None
            logger.debug("TCP 连接已关闭")

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

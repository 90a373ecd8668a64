"""
RCON 协议基类 (Base Protocol)

定义所有 RCON 协议策略必须实现的抽象接口，
以及各变体共用的 "发送一个包 / 接收一个包" 交换逻辑。
"""

import abc
import logging
import random
from typing import TYPE_CHECKING

from ..exceptions import UnexpectedTypeError
from . import packets

if TYPE_CHECKING:
    from ..config import RconConfig
    from ..network import NetworkClient
    from ..state import RconState


class BaseProtocol(abc.ABC):
    """协议策略抽象基类。

    所有具体的协议变体都必须继承此类，并实现认证和命令执行逻辑。
    """

    def __init__(
        self,
        config: "RconConfig",
        state: "RconState",
        net_client: "NetworkClient",
        rng: random.Random | None = None,
    ) -> None:
        """初始化协议基类。

        Args:
            config: 全局配置对象。
            state: 共享状态对象。
            net_client: 网络客户端实例。
            rng: 请求 ID 的随机源。为 None 时使用进程级默认随机源。
        """
        self.config = config
        self.state = state
        self.net_client = net_client
        self.rng = rng
        self.logger = logging.getLogger(self.__class__.__name__)
        # 上一次读取中属于后续数据包的字节
        self._buffer = b""

    @abc.abstractmethod
    def login(self) -> bool:
        """[Abstract] 执行认证握手。

        Returns:
            bool: 认证成功返回 True。

        Raises:
            AuthenticationRejected: 服务器拒绝了密码。
            NetworkError: 网络通信异常。
            ProtocolError: 协议交互异常。
        """
        raise NotImplementedError

    @abc.abstractmethod
    def execute(self, command: str) -> str:
        """[Abstract] 执行一条命令并返回输出文本。"""
        raise NotImplementedError

    # =========================================================================
    # 包交换 (Exchange)
    # =========================================================================

    def _send_packet(self, kind: int, body: str) -> int:
        """构建并发送一个数据包。

        Returns:
            int: 本次使用的请求 ID。
        """
        request_id = packets.next_request_id(self.rng)
        data = packets.build_packet(kind, body, request_id, self.config.encoding)
        self.net_client.send(data)
        self.state.last_request_id = request_id
        return request_id

    def _receive_packet(self, expected_kind: int, step: str = "") -> packets.Packet:
        """接收一个完整的数据包，并校验其类型。

        以 Size 字段为准累积读取，直到缓冲区中有一个完整的帧；
        同一次读取中多出来的字节留给下一次调用。

        Raises:
            ReadError: 读取失败。
            FramingError: 帧结构非法。
            UnexpectedTypeError: 包类型与当前步骤不符。
        """
        max_size = self.config.max_packet_size
        length = packets.frame_length(self._buffer, max_size)
        while length is None:
            self._buffer += self.net_client.receive()
            length = packets.frame_length(self._buffer, max_size)

        frame, self._buffer = self._buffer[:length], self._buffer[length:]
        packet = packets.parse_packet(frame, max_size, self.config.encoding)

        if packet.kind != expected_kind:
            raise UnexpectedTypeError(expected_kind, packet.kind, step)
        return packet

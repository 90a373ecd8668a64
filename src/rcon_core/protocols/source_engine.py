"""
Source RCON 策略 (Strategy)

职责：
1. 认证握手：AUTH -> (空 RESPONSE_VALUE) -> AUTH_RESPONSE。
2. 命令交换：EXECCOMMAND -> RESPONSE_VALUE，并去掉末尾状态行。
3. 状态维护：握手状态机与会话终止标记。

所有错误都直接向上抛出，不做重试。
"""

import random
from typing import TYPE_CHECKING

from ..exceptions import AuthenticationRejected, RconError, StateError
from ..state import HandshakeState
from . import packets
from .base import BaseProtocol
from .constants import PacketType

if TYPE_CHECKING:
    from ..config import RconConfig
    from ..network import NetworkClient
    from ..state import RconState


class SourceEngineProtocol(BaseProtocol):
    """Source Engine RCON 协议策略实现。"""

    def __init__(
        self,
        config: "RconConfig",
        state: "RconState",
        net_client: "NetworkClient",
        rng: random.Random | None = None,
        expect_empty_response: bool | None = None,
        strip_status_line: bool | None = None,
    ):
        """初始化协议策略。

        Args:
            config: 全局配置对象。
            state: 共享状态对象。
            net_client: 网络客户端。
            rng: 请求 ID 的随机源。
            expect_empty_response: 认证响应前是否有一个空 RESPONSE_VALUE 包，
                为 None 时取 config.auth_empty_response。
            strip_status_line: 是否去掉命令输出的状态行，
                为 None 时取 config.strip_status_line。
        """
        super().__init__(config, state, net_client, rng)
        self.expect_empty_response = (
            config.auth_empty_response if expect_empty_response is None else expect_empty_response
        )
        self.strip_status_line = (
            config.strip_status_line if strip_status_line is None else strip_status_line
        )
        self._failed = False
        self.logger.debug(
            f"Source RCON 策略已加载 (empty_ack={self.expect_empty_response}, "
            f"strip_status_line={self.strip_status_line})"
        )

    def login(self) -> bool:
        """执行认证握手 (每条连接只能执行一次)。

        Returns:
            bool: 认证成功返回 True。

        Raises:
            StateError: 握手已经执行过。
            AuthenticationRejected: 服务器返回哨兵 ID。
            NetworkError: 读写失败。
            ProtocolError: 帧结构错误或包类型不符。
        """
        if self.state.handshake != HandshakeState.IDLE:
            raise StateError(f"握手只能执行一次 (当前: {self.state.handshake.name})")

        try:
            return self._handshake()
        except AuthenticationRejected:
            raise
        except RconError:
            self._fail()
            self.state.handshake = HandshakeState.FAILED
            raise

    def execute(self, command: str) -> str:
        """发送一条命令并返回其输出。

        Args:
            command: 命令文本。

        Returns:
            str: 命令输出 (已去掉状态行)。

        Raises:
            StateError: 尚未认证，或会话已因先前的错误终止。
            MissingTrailerError: 响应中找不到状态行。
            NetworkError: 读写失败。
            ProtocolError: 帧结构错误或包类型不符。
        """
        if self._failed:
            raise StateError("会话已因先前的错误终止")
        if self.state.handshake != HandshakeState.AUTHENTICATED:
            raise StateError(f"尚未认证，无法执行命令 (当前: {self.state.handshake.name})")

        try:
            self._send_packet(PacketType.COMMAND, command)
            packet = self._receive_packet(PacketType.COMMAND_RESPONSE, "RESPONSE_VALUE")
            output = packets.strip_status_line(packet.body) if self.strip_status_line else packet.body
        except RconError:
            self._fail()
            raise

        self.state.commands_executed += 1
        self.logger.debug(f"命令执行完成: {len(output)} 字符")
        return output

    # =========================================================================
    # 内部实现
    # =========================================================================

    def _handshake(self) -> bool:
        """握手状态机: IDLE -> AUTH_SENT -> EMPTY_ACK_RECEIVED -> AUTHENTICATED/REJECTED"""
        self._send_packet(PacketType.AUTH, self.config.password)
        self.state.handshake = HandshakeState.AUTH_SENT
        self.logger.debug("认证请求已发送")

        if self.expect_empty_response:
            # 服务器会先回一个空的 RESPONSE_VALUE，丢弃即可
            ack = self._receive_packet(PacketType.COMMAND_RESPONSE, "认证前的空响应")
            if ack.body:
                self.logger.debug(f"认证前的响应非空，已丢弃: {ack.body!r}")
            self.state.handshake = HandshakeState.EMPTY_ACK_RECEIVED

        response = self._receive_packet(PacketType.AUTH_RESPONSE, "AUTH_RESPONSE")

        if not packets.parse_auth_response(response):
            self.state.handshake = HandshakeState.REJECTED
            self._fail()
            self.logger.warning("服务器拒绝了认证")
            raise AuthenticationRejected(request_id=response.request_id)

        if response.request_id != self.state.last_request_id:
            self.logger.debug(
                f"认证响应 ID 与请求不一致: {response.request_id:#x} != {self.state.last_request_id:#x}"
            )

        self.state.handshake = HandshakeState.AUTHENTICATED
        self.logger.info("认证成功")
        return True

    def _fail(self) -> None:
        """标记会话终止，之后的任何命令都会被拒绝。"""
        self._failed = True

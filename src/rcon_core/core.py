# File: src/rcon_core/core.py
"""
RCON 核心引擎 (Core Engine)

职责：
1. 资源组装：State + Network + Config + Protocol。
2. 策略分发。
3. 生命周期：Connect -> Login -> Execute* -> Stop。
"""

import logging
import random
import socket
import time
from collections.abc import Callable, Iterable, Iterator
from dataclasses import replace
from typing import Any

from .config import RconConfig
from .exceptions import AuthenticationRejected, ConfigError, RconError, StateError
from .network import NetworkClient
from .protocols import constants
from .protocols.base import BaseProtocol
from .protocols.source_engine import SourceEngineProtocol
from .state import CoreStatus, RconState, SessionPhase

logger = logging.getLogger(__name__)

# 定义回调函数类型别名
StatusCallback = Callable[[CoreStatus, str], Any]


class RconCore:
    """RCON 远程控制台核心引擎。

    一个实例对应一条连接：一次握手，随后顺序执行任意条命令。
    连接由引擎持有，stop() 或退出上下文管理器时关闭。
    """

    def __init__(
        self,
        config: RconConfig,
        status_callback: StatusCallback | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """初始化核心引擎。

        Args:
            config: 全局配置对象。
            status_callback: 初始状态回调。也可以之后用 add_listener 注册。
            rng: 请求 ID 的随机源，测试时可注入确定性的 random.Random。
        """
        self.config = config

        self._listeners: list[StatusCallback] = []
        if status_callback:
            self.add_listener(status_callback)

        self._state = RconState()
        self.net_client = NetworkClient(config)

        self.protocol: BaseProtocol
        self._load_strategy(rng)

        self._update_status(CoreStatus.IDLE, "引擎已就绪")

    @property
    def state(self) -> RconState:
        """获取当前会话状态的只读副本。"""
        return replace(self._state)

    def add_listener(self, callback: StatusCallback) -> None:
        """注册状态变更监听器。"""
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_listener(self, callback: StatusCallback) -> None:
        """移除状态变更监听器。"""
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _load_strategy(self, rng: random.Random | None) -> None:
        """加载并实例化对应的协议策略。"""
        if self.config.protocol == constants.PROTOCOL_SOURCE:
            # 传入的是内部状态对象 self._state，以便策略层更新它
            self.protocol = SourceEngineProtocol(self.config, self._state, self.net_client, rng)
        else:
            raise ConfigError(f"不支持的协议: {self.config.protocol}")

    # =========================================================================
    # 生命周期
    # =========================================================================

    def connect(self, sock: socket.socket | None = None) -> None:
        """建立 TCP 连接，或接管一个已经连接好的 socket。

        Raises:
            ConnectError: 连接失败。
        """
        if self._state.status == CoreStatus.CLOSED:
            raise self._tag(StateError("引擎已停止，请创建新的实例"), SessionPhase.CONNECT)
        if self.net_client.is_connected:
            logger.debug("已连接，跳过 connect")
            return

        self._update_status(CoreStatus.CONNECTING, f"正在连接 {self.config.address}:{self.config.port}")
        try:
            if sock is not None:
                self.net_client.attach(sock)
            else:
                self.net_client.connect()
        except RconError as e:
            self._on_error(e, SessionPhase.CONNECT)
            raise

    def login(self) -> bool:
        """执行认证握手。未连接时会先自动连接。

        Returns:
            bool: 认证成功返回 True。

        Raises:
            AuthenticationRejected: 密码错误 (phase=AUTH)。
            NetworkError: 网络通信异常。
            ProtocolError: 协议交互异常。
        """
        if self._state.is_authenticated:
            logger.warning("当前已认证，跳过登录")
            return True

        if not self.net_client.is_connected:
            self.connect()

        self._update_status(CoreStatus.AUTHENTICATING, "正在认证...")
        try:
            self.protocol.login()
        except AuthenticationRejected as ae:
            self._tag(ae, SessionPhase.AUTH)
            self._state.last_error = str(ae)
            self._update_status(CoreStatus.ERROR, f"认证被拒绝: {ae}")
            raise
        except RconError as e:
            self._on_error(e, SessionPhase.AUTH)
            raise

        self._update_status(CoreStatus.READY, "认证成功")
        return True

    def execute(self, command: str) -> str:
        """执行一条命令并返回输出文本。

        Raises:
            StateError: 尚未认证或会话已终止。
            MissingTrailerError: 响应中没有状态行。
            NetworkError / ProtocolError: 通信失败。
        """
        if not self._state.is_authenticated:
            raise self._tag(
                StateError(f"当前状态无法执行命令: {self._state.status.name}"),
                SessionPhase.COMMAND,
            )

        logger.debug(f"执行命令: {command!r}")
        try:
            return self.protocol.execute(command)
        except RconError as e:
            self._on_error(e, SessionPhase.COMMAND)
            raise

    def execute_all(self, commands: Iterable[str], delay: float | None = None) -> Iterator[tuple[str, str]]:
        """顺序执行多条命令，逐条产出 (命令, 输出)。

        Args:
            commands: 命令序列。
            delay: 两条命令之间的间隔 (秒)，为 None 时取 config.command_delay。
        """
        interval = self.config.command_delay if delay is None else delay
        for index, command in enumerate(commands):
            if index and interval > 0:
                time.sleep(interval)
            yield command, self.execute(command)

    def probe_server(self, timeout: float = 2.0) -> bool:
        """探测服务器端口是否可连接。

        只打开并立即关闭一条独立的 TCP 连接，不影响当前会话。
        """
        try:
            with socket.create_connection((self.config.address, self.config.port), timeout=timeout):
                return True
        except OSError as e:
            logger.debug(f"探测失败: {e}")
            return False

    def stop(self) -> None:
        """关闭连接并停止引擎 (可重复调用)。"""
        if self._state.status == CoreStatus.CLOSED:
            return
        self.net_client.close()
        self._update_status(CoreStatus.CLOSED, "已停止")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()

    # =========================================================================
    # 内部实现
    # =========================================================================

    @staticmethod
    def _tag(error: RconError, phase: SessionPhase) -> RconError:
        """为异常标注会话阶段 (保留已有的标注)。"""
        if error.phase is None:
            error.phase = phase
        return error

    def _on_error(self, error: RconError, phase: SessionPhase) -> None:
        self._tag(error, phase)
        self._state.last_error = str(error)
        self._update_status(CoreStatus.ERROR, f"{phase.value} 阶段失败: {error}")

    def _update_status(self, status: CoreStatus, msg: str) -> None:
        """更新内部状态并同步触发所有回调。"""
        self._state.status = status
        logger.info(f"[{status.name}] {msg}")

        for callback in list(self._listeners):
            try:
                callback(status, msg)
            except Exception as e:
                logger.error(f"回调执行异常: {e}")

# File: src/rcon_core/state.py
"""
RCON 核心库 - 状态模块

负责定义和存储所有易变的会话状态。
本模块不包含业务逻辑，仅作为数据容器供 Core 和 Protocol 共享读写。
"""

from dataclasses import dataclass
from enum import Enum, auto


class CoreStatus(Enum):
    """核心引擎的生命周期状态枚举。

    状态流转示意:
    IDLE -> CONNECTING -> AUTHENTICATING -> READY -> CLOSED
               |               |              |
               v               v              v
             ERROR           ERROR          ERROR
    """

    IDLE = auto()
    """初始状态，引擎已实例化但未执行任何操作。"""

    CONNECTING = auto()
    """正在建立 TCP 连接。"""

    AUTHENTICATING = auto()
    """连接已建立，正在执行认证握手。"""

    READY = auto()
    """认证成功，可以顺序执行命令。"""

    CLOSED = auto()
    """连接已关闭。"""

    ERROR = auto()
    """发生了致命错误，会话已终止。"""


class HandshakeState(Enum):
    """认证握手状态机。

    IDLE -> AUTH_SENT -> EMPTY_ACK_RECEIVED -> AUTHENTICATED
                                            -> REJECTED

    EMPTY_ACK_RECEIVED 仅在服务器会先回一个空 RESPONSE_VALUE 包的变体中出现。
    """

    IDLE = auto()
    AUTH_SENT = auto()
    EMPTY_ACK_RECEIVED = auto()
    AUTHENTICATED = auto()
    REJECTED = auto()
    FAILED = auto()


class SessionPhase(Enum):
    """错误发生时所处的会话阶段，供上层映射退出码或提示信息。"""

    CONNECT = "connect"
    AUTH = "auth"
    COMMAND = "command"


@dataclass
class RconState:
    """存储一次 RCON 会话的易变状态数据。

    该对象是非持久化的，每条连接对应一个新实例。

    Attributes:
        status: 当前核心引擎的运行状态。
        handshake: 认证握手状态机的当前状态。
        last_error: 最近一次发生的错误信息描述。
        last_request_id: 最近一次发出的数据包 ID。
        commands_executed: 已成功执行的命令数量。
    """

    status: CoreStatus = CoreStatus.IDLE
    handshake: HandshakeState = HandshakeState.IDLE
    last_error: str = ""
    last_request_id: int = 0
    commands_executed: int = 0

    @property
    def is_authenticated(self) -> bool:
        """握手已成功完成，且会话未因错误终止。"""
        return self.handshake == HandshakeState.AUTHENTICATED and self.status not in (
            CoreStatus.ERROR,
            CoreStatus.CLOSED,
        )

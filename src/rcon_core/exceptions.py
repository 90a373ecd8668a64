# File: src/rcon_core/exceptions.py
"""
RCON 核心库 - 异常体系 (Exceptions)

定义库内统一使用的异常类，以便上层应用（如 CLI）能进行精细的错误处理。
所有异常都是会话级致命错误：核心库从不在内部重试，也从不吞没异常。
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .state import SessionPhase


class RconError(Exception):
    """RCON 核心库所有内部异常的基类。

    上层应用可以通过捕获此异常来处理所有由 rcon-core 抛出的已知错误。

    Attributes:
        phase: 出错时所处的会话阶段 (connect/auth/command)。
            由 RconCore 在异常向上冒泡时填写，协议层直接抛出时为 None。
    """

    phase: "SessionPhase | None" = None


class ConfigError(RconError):
    """配置加载或校验失败。

    触发场景:
    1. 缺少必要字段 (如 address/password)。
    2. 字段格式错误 (如 IPv4 地址非法、端口越界)。
    3. 请求了尚未实现的协议 (如 Minecraft)。
    """

    pass


class StateError(RconError):
    """状态机错误 (FSM Violation)。

    触发场景:
    1. 在未认证状态下尝试执行命令。
    2. 对同一连接重复执行握手。
    3. 会话已因先前的错误终止后继续使用。
    """

    pass


class NetworkError(RconError):
    """网络层面的错误 (I/O 级别)。"""

    pass


class ConnectError(NetworkError):
    """TCP 连接建立失败 (拨号失败、DNS 失败、连接被拒绝)。"""

    pass


class WriteError(NetworkError):
    """发送失败，或实际写入的字节数与数据包长度不一致。

    协议没有重传/确认机制，短写直接视为致命错误。
    """

    pass


class ReadError(NetworkError):
    """接收失败：I/O 错误、超时，或对端关闭了连接。"""

    pass


class ProtocolError(RconError):
    """协议交互错误 (逻辑级别)。"""

    pass


class FramingError(ProtocolError):
    """帧结构错误。

    触发场景:
    1. 缓冲区不足 4 字节，无法读取 Size 字段。
    2. Size 字段小于最小包长，或超过最大包长。
    3. 缓冲区比 Size 字段声明的长度短 (截断)。
    4. 包体终止符不是 0x00。
    """

    pass


class UnexpectedTypeError(ProtocolError):
    """收到了结构合法、但类型不符合当前协议步骤的数据包。"""

    def __init__(self, expected: int, actual: int, step: str = "") -> None:
        """初始化类型错误。

        Args:
            expected: 当前步骤期望的包类型。
            actual: 实际收到的包类型。
            step: 协议步骤名称，用于错误提示。
        """
        self.expected = expected
        self.actual = actual
        self.step = step
        where = f" ({step})" if step else ""
        super().__init__(f"收到非预期的包类型{where}: 期望 {expected}, 实际 {actual}")


class MissingTrailerError(ProtocolError):
    """命令响应中找不到状态行前的换行符，无法确定状态行起点。"""

    pass


class AuthenticationRejected(RconError):
    """认证被拒绝 (业务层面的失败)。

    握手过程本身合法，但服务器以哨兵 ID (0xFFFFFFFF) 表示密码错误。
    这通常意味着不可恢复的配置错误，需要用户干预。
    """

    def __init__(self, message: str = "认证被拒绝 (密码错误?)", request_id: int | None = None) -> None:
        super().__init__(message)
        self.request_id = request_id

# File: src/rcon_core/protocols/packets.py
"""
Source RCON 封包构建器与解析器 (Packet Codec)

负责 Python 数据结构与协议二进制字节流 (bytes) 之间的相互转换。
本模块是无状态的 (Stateless)，不包含任何 socket 操作或会话信息。
"""

import logging
import random
import struct
from dataclasses import dataclass

from ..exceptions import FramingError, MissingTrailerError, ProtocolError
from . import constants
from .constants import PacketType

logger = logging.getLogger(__name__)

# 进程级随机源，导入时播种一次。协议层允许注入自己的 random.Random。
_default_rng = random.Random()


@dataclass(frozen=True, slots=True)
class Packet:
    """一个已解码的 RCON 数据包。

    Attributes:
        request_id: 请求 ID，客户端随机生成，服务器回显 (认证失败时为哨兵值)。
        kind: 包类型，见 constants.PacketType。
        body: 包体文本，不含终止符。
    """

    request_id: int
    kind: int
    body: str


def next_request_id(rng: random.Random | None = None) -> int:
    """从随机源中抽取一个请求 ID。

    取值范围为 [1, 0xFFFFFFFF)，保证客户端 ID 不会与认证失败的哨兵值冲突。
    不保证全局唯一，只保证统计意义上的不同。

    Args:
        rng: 随机源。为 None 时使用进程级默认随机源。

    Returns:
        int: 32 位无符号请求 ID。
    """
    source = rng if rng is not None else _default_rng
    return source.randrange(constants.REQUEST_ID_MIN, constants.REQUEST_ID_MAX)


# =========================================================================
# 构建 (Encode)
# =========================================================================


def build_packet(kind: int, body: str, request_id: int, encoding: str = "ascii") -> bytes:
    """构建一个完整的 RCON 数据包。

    结构: Size(4B) + ID(4B) + Type(4B) + Body + 0x00 (包体终止符) + 0x00 (帧终止符)
    其中 Size = 4 + 4 + len(Body) + 1，不包含帧终止符。

    Args:
        kind: 包类型。
        body: 包体文本，可以为空，但不能包含 NUL 字符。
        request_id: 请求 ID。
        encoding: 包体编码，默认 ASCII。

    Returns:
        bytes: 可直接写入 socket 的字节流。

    Raises:
        ProtocolError: 包体含有 NUL 字符，或无法以指定编码表示。
    """
    # 协议不转义包体中的 0x00，接收方会把它当成包体结束
    if "\x00" in body:
        raise ProtocolError("包体不能包含 NUL 字符")

    try:
        body_bytes = body.encode(encoding)
    except UnicodeEncodeError as e:
        raise ProtocolError(f"包体无法以 {encoding} 编码: {e}") from e

    size = constants.MIN_PACKET_SIZE + len(body_bytes)
    header = struct.pack(constants.HEADER_FORMAT, size, request_id, kind)
    return header + body_bytes + constants.TERMINATOR + constants.TERMINATOR


def build_auth_packet(password: str, request_id: int, encoding: str = "ascii") -> bytes:
    """构建 SERVERDATA_AUTH (3) 认证请求包。"""
    return build_packet(PacketType.AUTH, password, request_id, encoding)


def build_command_packet(command: str, request_id: int, encoding: str = "ascii") -> bytes:
    """构建 SERVERDATA_EXECCOMMAND (2) 命令请求包。"""
    return build_packet(PacketType.COMMAND, command, request_id, encoding)


# =========================================================================
# 解析 (Decode)
# =========================================================================


def _read_size(data: bytes, max_size: int) -> int:
    """读取并校验 Size 字段。"""
    if len(data) < constants.SIZE_FIELD_LEN:
        raise FramingError(f"数据不足以读取 Size 字段 ({len(data)} 字节)")

    (size,) = struct.unpack_from(constants.SIZE_FORMAT, data)
    if size < constants.MIN_PACKET_SIZE:
        raise FramingError(f"Size 字段过小: {size} < {constants.MIN_PACKET_SIZE}")
    if size > max_size:
        raise FramingError(f"Size 字段超过上限: {size} > {max_size}")
    return size


def frame_length(buffer: bytes, max_size: int = constants.MAX_PACKET_SIZE) -> int | None:
    """计算缓冲区中第一个完整帧占用的字节数。

    兼容两种终止符计数方式:
    1. Size 只计包体终止符，帧终止符额外跟在后面 (本库发出的格式)。
    2. Size 同时计入两个终止符 (部分服务器的实现)，此时包体区域以 0x00 结尾，
       后面不再有额外的帧终止符。

    Args:
        buffer: 已接收的字节流。
        max_size: 允许声明的最大 Size。

    Returns:
        int | None: 第一个帧的总长度；数据尚不完整时返回 None。

    Raises:
        FramingError: Size 字段非法，或帧终止符不是 0x00。
    """
    if len(buffer) < constants.SIZE_FIELD_LEN:
        return None

    size = _read_size(buffer, max_size)
    end = constants.SIZE_FIELD_LEN + size
    if len(buffer) < end:
        return None

    if size > constants.MIN_PACKET_SIZE and buffer[end - 2 : end - 1] == constants.TERMINATOR:
        return end

    if len(buffer) < end + 1:
        return None
    if buffer[end : end + 1] != constants.TERMINATOR:
        raise FramingError(f"帧终止符缺失 (偏移 {end}: {buffer[end:end + 1].hex()})")
    return end + 1


def parse_packet(
    data: bytes,
    max_size: int = constants.MAX_PACKET_SIZE,
    encoding: str = "ascii",
) -> Packet:
    """解析一个 RCON 数据包。

    以 Size 字段为准定位包体边界，而不是扫描终止符。
    末尾的帧终止符可有可无，多余的字节会被忽略。

    Args:
        data: 以 Size 字段开头的原始字节流。
        max_size: 允许声明的最大 Size。
        encoding: 包体编码，无法解码的字节以替换字符表示。

    Returns:
        Packet: 解码后的数据包。

    Raises:
        FramingError: 缓冲区比 Size 声明的短、Size 非法或包体终止符缺失。
    """
    size = _read_size(data, max_size)
    end = constants.SIZE_FIELD_LEN + size
    if len(data) < end:
        raise FramingError(
            f"数据包被截断: Size 声明 {size} 字节, 实际只有 {len(data) - constants.SIZE_FIELD_LEN} 字节"
        )

    _, request_id, kind = struct.unpack_from(constants.HEADER_FORMAT, data)

    if data[end - 1 : end] != constants.TERMINATOR:
        raise FramingError(f"包体终止符缺失 (偏移 {end - 1}: {data[end - 1:end].hex()})")

    body_bytes = data[constants.HEADER_LEN : end - 1]
    # Size 同时计入两个终止符时，包体区域的最后一个字节也是终止符
    if body_bytes.endswith(constants.TERMINATOR):
        body_bytes = body_bytes[:-1]

    logger.debug("parse_packet: id=%#010x type=%d body_len=%d", request_id, kind, len(body_bytes))
    return Packet(
        request_id=request_id,
        kind=kind,
        body=body_bytes.decode(encoding, errors="replace"),
    )


def parse_auth_response(packet: Packet) -> bool:
    """判断 AUTH_RESPONSE 是否表示认证成功。

    Returns:
        bool: ID 为哨兵值 0xFFFFFFFF 时返回 False，其余情况返回 True。
    """
    return packet.request_id != constants.AUTH_FAILED_ID


def strip_status_line(body: str) -> str:
    """去掉服务器追加在命令输出末尾的状态行。

    服务器会在真实输出后追加 "rcon from <ip>: command <text>\\n"。
    先去掉一个结尾换行符，再从最后一个换行符处截断。

    Args:
        body: COMMAND_RESPONSE 的包体。

    Returns:
        str: 状态行之前的文本。

    Raises:
        MissingTrailerError: 包体中找不到换行符，无法定位状态行。
    """
    sep = constants.STATUS_LINE_SEPARATOR
    trimmed = body[: -len(sep)] if body.endswith(sep) else body

    pos = trimmed.rfind(sep)
    if pos == -1:
        raise MissingTrailerError(f"命令响应中找不到状态行换行符: {body!r}")
    return trimmed[:pos]

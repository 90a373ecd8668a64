# src/rcon_core/protocols/constants.py
"""
Source RCON 协议常量表 (Constants)

仅定义协议的结构性常量（包类型、字段长度、哨兵值）。
不包含任何默认策略值（如超时、编码），这些应由 Config 注入。

线格式 (全部小端序):
    Size (4B) | ID (4B) | Type (4B) | Body (nB) | 0x00 | 0x00
Size 覆盖 ID + Type + Body + 包体终止符，不包含最后的帧终止符。
"""

import struct


# =========================================================================
# 包类型 (Packet Types)
# =========================================================================
class PacketType:
    """数据包 Type 字段定义。

    COMMAND 与 AUTH_RESPONSE 数值相同，只能依靠协议步骤 (方向) 区分。
    """

    AUTH = 3  # SERVERDATA_AUTH (Client -> Server)
    AUTH_RESPONSE = 2  # SERVERDATA_AUTH_RESPONSE (Server -> Client)
    COMMAND = 2  # SERVERDATA_EXECCOMMAND (Client -> Server)
    COMMAND_RESPONSE = 0  # SERVERDATA_RESPONSE_VALUE (Server -> Client)


# =========================================================================
# 结构 (Structure)
# =========================================================================
HEADER_FORMAT = "<III"  # size, id, type
SIZE_FORMAT = "<I"
SIZE_FIELD_LEN = 4
HEADER_LEN = struct.calcsize(HEADER_FORMAT)  # 12

ID_LEN = 4
TYPE_LEN = 4
TERMINATOR = b"\x00"

# Size 字段的最小值: ID + Type + 包体终止符 (空包体)
MIN_PACKET_SIZE = ID_LEN + TYPE_LEN + len(TERMINATOR)  # 9

# 单次读取上限，同时也是允许声明的最大包长
MAX_PACKET_SIZE = 4096

# =========================================================================
# 认证 (Auth)
# =========================================================================
# AUTH_RESPONSE 的 ID 为全 1 表示认证失败
AUTH_FAILED_ID = 0xFFFFFFFF

# 客户端请求 ID 的取值范围 [1, AUTH_FAILED_ID)
REQUEST_ID_MIN = 1
REQUEST_ID_MAX = AUTH_FAILED_ID

# =========================================================================
# 响应清理 (Response Cleanup)
# =========================================================================
# 服务器在输出末尾追加 "rcon from <ip>: command <text>" 状态行
STATUS_LINE_SEPARATOR = "\n"

# =========================================================================
# 协议变体 (Protocol Variants)
# =========================================================================
PROTOCOL_SOURCE = "SOURCE"
PROTOCOL_MINECRAFT = "MINECRAFT"

DEFAULT_PORTS = {
    PROTOCOL_SOURCE: 27015,
    PROTOCOL_MINECRAFT: 25575,
}

# src/rcon_core/protocols/__init__.py
"""
RCON 协议层 (Protocol Layer)

- constants / packets: 纯粹的封包构建 (Build) 与解析 (Parse)，无 I/O、无状态。
- base / source_engine: 协议策略，负责握手与命令交换的流程编排。
"""

from . import constants
from .constants import PacketType
from .packets import (
    Packet,
    build_auth_packet,
    build_command_packet,
    build_packet,
    frame_length,
    next_request_id,
    parse_auth_response,
    parse_packet,
    strip_status_line,
)

# 公共 API
__all__ = [
    "constants",
    "PacketType",
    "Packet",
    "build_packet",
    "build_auth_packet",
    "build_command_packet",
    "next_request_id",
    "frame_length",
    "parse_packet",
    "parse_auth_response",
    "strip_status_line",
]

# src/rcon_core/__init__.py
"""
RCON-Core v1.0.0
Source RCON 远程控制台协议的核心库：封包编解码、认证握手与命令交换。
"""

__version__ = "1.0.0"

# 暴露核心配置
from .config import (
    RconConfig,
    create_config_from_dict,
    load_config_from_env,
    load_config_from_toml,
)

# 暴露引擎与状态
from .core import RconCore

# 暴露异常体系 (方便上层 try-except)
from .exceptions import (
    AuthenticationRejected,
    ConfigError,
    ConnectError,
    FramingError,
    MissingTrailerError,
    NetworkError,
    ProtocolError,
    RconError,
    ReadError,
    StateError,
    UnexpectedTypeError,
    WriteError,
)
from .state import CoreStatus, HandshakeState, RconState, SessionPhase

__all__ = [
    "RconCore",
    "RconConfig",
    "RconState",
    "CoreStatus",
    "HandshakeState",
    "SessionPhase",
    "create_config_from_dict",
    "load_config_from_env",
    "load_config_from_toml",
    "RconError",
    "ConfigError",
    "StateError",
    "NetworkError",
    "ConnectError",
    "WriteError",
    "ReadError",
    "ProtocolError",
    "FramingError",
    "UnexpectedTypeError",
    "MissingTrailerError",
    "AuthenticationRejected",
]

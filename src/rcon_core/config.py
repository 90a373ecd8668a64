"""
RCON 核心库 - 配置模块

负责配置的加载、解析与强类型转换。
支持从 TOML 文件、环境变量 (.env) 或字典中加载配置。
"""

import ipaddress
import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv

from .exceptions import ConfigError
from .protocols import constants

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("true", "1", "t", "yes", "on")
_FALSE_VALUES = ("false", "0", "f", "no", "off")


@dataclass(frozen=True)
class RconConfig:
    """RconCore 的强类型配置对象。

    所有字段均为只读 (frozen=True)，确保配置在运行时不可变。

    Attributes:
        address: 远程服务器 IPv4 地址。
        port: 远程服务器端口 (Source 默认为 27015)。
        password: 远程控制台密码。
        protocol: 协议变体标识 (目前仅支持 'SOURCE')。
        timeout: socket 连接/读写超时 (秒)，0 表示不设超时。
        max_packet_size: 单次读取上限，同时也是允许的最大包长。
        encoding: 包体文本编码。
        auth_empty_response: 服务器是否会在认证响应前先发一个空的 RESPONSE_VALUE 包。
        strip_status_line: 是否去掉命令输出末尾的 "rcon from ..." 状态行。
        command_delay: 连续执行多条命令时的间隔 (秒)。
    """

    address: str
    port: int
    password: str
    protocol: str = constants.PROTOCOL_SOURCE
    timeout: float = 5.0
    max_packet_size: int = constants.MAX_PACKET_SIZE
    encoding: str = "ascii"
    auth_empty_response: bool = True
    strip_status_line: bool = True
    command_delay: float = 0.0

    def __repr__(self) -> str:
        """覆盖默认的 repr，隐藏密码字段，防止日志泄露敏感信息。"""
        return (
            f"<{self.__class__.__name__} "
            f"server={self.address}:{self.port}, "
            f"password='******', "
            f"protocol={self.protocol}, "
            f"timeout={self.timeout}>"
        )


def create_config_from_dict(raw_data: dict[str, Any]) -> RconConfig:
    """通用工厂：将字典转换为强类型配置对象。

    负责字段的清洗、默认值注入和类型转换。

    Args:
        raw_data: 原始配置字典 (来自 TOML、Env 或命令行)。值为 None 的键视为缺失。

    Returns:
        RconConfig: 验证并转换后的配置对象。

    Raises:
        ConfigError: 当必要字段缺失或格式错误时抛出。
    """
    data = {k: v for k, v in raw_data.items() if v is not None}

    try:
        # --- 内部辅助函数 ---
        def _req(key: str) -> Any:
            """获取必要字段，缺失则报错"""
            if key not in data:
                raise ConfigError(f"配置缺失: 缺少必要字段 '{key}'")
            return data[key]

        def _get(key: str, default: Any) -> Any:
            """获取可选字段，缺失则使用默认值"""
            return data.get(key, default)

        def _to_bool(key: str, default: bool) -> bool:
            """兼容 TOML 布尔值与环境变量字符串"""
            val = data.get(key, default)
            if isinstance(val, bool):
                return val
            text = str(val).strip().lower()
            if text in _TRUE_VALUES:
                return True
            if text in _FALSE_VALUES:
                return False
            raise ConfigError(f"布尔值无效 '{key}': {val}")

        def _to_ipv4(key: str, default: str) -> str:
            """校验 IPv4 地址"""
            val = str(data.get(key, default)).strip()
            try:
                return str(ipaddress.IPv4Address(val))
            except ValueError:
                raise ConfigError(f"IPv4 地址无效 '{key}': {val!r}")

        def _to_float(key: str, default: float) -> float:
            val = data.get(key, default)
            try:
                num = float(val)
            except (TypeError, ValueError):
                raise ConfigError(f"数值无效 '{key}': {val!r}")
            if num < 0:
                raise ConfigError(f"数值不能为负 '{key}': {num}")
            return num

        # --- 协议 ---
        protocol = str(_get("protocol", constants.PROTOCOL_SOURCE)).upper()
        if protocol == constants.PROTOCOL_MINECRAFT:
            raise ConfigError("Minecraft 协议尚未实现")
        if protocol != constants.PROTOCOL_SOURCE:
            raise ConfigError(f"不支持的协议: {protocol}")

        # --- 端口 (未指定时按协议选择默认端口) ---
        raw_port = _get("port", 0)
        try:
            port = int(raw_port)
        except (TypeError, ValueError):
            raise ConfigError(f"端口无效: {raw_port!r}")
        if port == 0:
            port = constants.DEFAULT_PORTS[protocol]
        if not 0 < port < 65536:
            raise ConfigError(f"端口越界: {port}")

        max_packet_size = int(_get("max_packet_size", constants.MAX_PACKET_SIZE))
        if max_packet_size < constants.MIN_PACKET_SIZE:
            raise ConfigError(f"max_packet_size 过小: {max_packet_size}")

        encoding = str(_get("encoding", "ascii"))
        try:
            "".encode(encoding)
        except LookupError:
            raise ConfigError(f"未知的编码: {encoding}")

        # --- 构建对象 ---
        return RconConfig(
            address=_to_ipv4("address", "127.0.0.1"),
            port=port,
            password=str(_req("password")),
            protocol=protocol,
            timeout=_to_float("timeout", 5.0),
            max_packet_size=max_packet_size,
            encoding=encoding,
            auth_empty_response=_to_bool("auth_empty_response", True),
            strip_status_line=_to_bool("strip_status_line", True),
            command_delay=_to_float("command_delay", 0.0),
        )

    except Exception as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(f"配置生成失败: {e}") from e


def load_config_from_toml(file_path: Path, profile: str = "default") -> RconConfig:
    """从 TOML 文件加载配置。

    支持多层级查找策略:
    1. [profile.xxx]: 优先查找指定的 profile 块。
    2. [rcon]: 单服务器配置块。
    3. Root: 兼容根目录直接配置。

    Args:
        file_path: TOML 文件路径。
        profile: 配置预设名。默认为 "default"。

    Returns:
        RconConfig: 配置对象。

    Raises:
        ConfigError: 文件读取失败或 Profile 不存在。
    """
    return create_config_from_dict(read_toml_section(file_path, profile))


def read_toml_section(file_path: Path, profile: str = "default") -> dict[str, Any]:
    """读取 TOML 文件中对应 profile 的原始字典 (未校验)。

    供需要与命令行参数合并后再校验的调用方使用。
    """
    if not file_path.exists():
        raise ConfigError(f"配置文件未找到: {file_path}")

    try:
        with open(file_path, "rb") as f:
            data = tomllib.load(f)
    except Exception as e:
        raise ConfigError(f"读取 TOML 失败: {e}") from e

    if "profile" in data:
        if profile not in data["profile"]:
            raise ConfigError(f"未找到预设: [profile.{profile}]")
        return dict(data["profile"][profile])

    if "rcon" in data:
        if profile != "default":
            logger.warning(f"配置仅包含 [rcon] 节，忽略 profile='{profile}'。")
        return dict(data["rcon"])

    return dict(data)


# 字段映射表 (Config Field -> Env Suffix)
ENV_MAP = {
    "address": "ADDRESS",
    "port": "PORT",
    "password": "PASSWORD",
    "protocol": "PROTOCOL",
    "timeout": "TIMEOUT",
    "max_packet_size": "MAX_PACKET_SIZE",
    "encoding": "ENCODING",
    "auth_empty_response": "AUTH_EMPTY_RESPONSE",
    "strip_status_line": "STRIP_STATUS_LINE",
    "command_delay": "COMMAND_DELAY",
}


def read_env_values(env_file: Path | None = None) -> dict[str, str]:
    """读取所有以 `RCON_` 开头的环境变量 (未校验)。

    若提供 env_file 或当前目录存在 .env，会先通过 python-dotenv 加载，
    已存在的环境变量优先。
    """
    if env_file is not None:
        if not env_file.exists():
            raise ConfigError(f".env 文件未找到: {env_file}")
        load_dotenv(dotenv_path=env_file, override=False)
    else:
        load_dotenv(find_dotenv(usecwd=True), override=False)

    raw_data = {}
    for cfg_key, env_suffix in ENV_MAP.items():
        val = os.environ.get(f"RCON_{env_suffix}")
        if val is not None:
            raw_data[cfg_key] = val
    return raw_data


def load_config_from_env(env_file: Path | None = None) -> RconConfig:
    """从环境变量加载配置 (Docker/Cloud Friendly)。

    自动读取所有以 `RCON_` 开头的环境变量，并映射到配置字段。
    例如: `RCON_PASSWORD` -> `password`。

    Args:
        env_file: 可选的 .env 文件路径。

    Returns:
        RconConfig: 配置对象。

    Raises:
        ConfigError: 未检测到任何相关环境变量。
    """
    raw_data = read_env_values(env_file)
    if not raw_data:
        raise ConfigError("未检测到 RCON_ 前缀的环境变量")
    return create_config_from_dict(raw_data)

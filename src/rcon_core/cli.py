"""
RCON 命令行入口 (CLI)

解析参数、合并 环境变量 / .env / TOML / 命令行 四层配置，
驱动 RconCore 完成 连接 -> 认证 -> 逐条执行命令，并把异常映射为退出码。
"""

import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from .config import RconConfig, create_config_from_dict, read_env_values, read_toml_section
from .core import RconCore
from .exceptions import AuthenticationRejected, ConfigError, RconError
from .protocols import constants

logger = logging.getLogger("rcon_core.cli")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2
EXIT_AUTH_REJECTED = 3

LOG_FORMAT = "%(asctime)s - %(name)s - [%(levelname)s] - %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rcon",
        description="通过 Source RCON 协议在远程服务器上执行命令。",
    )
    variant = parser.add_argument_group("协议")
    variant.add_argument(
        "-s", "--sourceengine", action="store_true",
        help="使用 Source Engine 协议 (默认端口 27015)。",
    )
    variant.add_argument(
        "-m", "--minecraft", action="store_true",
        help="使用 Minecraft 协议 (默认端口 25575，尚未实现)。",
    )

    parser.add_argument("-a", "--address", help="远程服务器 IPv4 地址 (默认 127.0.0.1)。")
    parser.add_argument("-p", "--port", type=int, help="远程服务器端口。")
    parser.add_argument("-P", "--password", help="远程控制台密码。")
    parser.add_argument("--timeout", type=float, help="socket 超时 (秒)。")
    parser.add_argument("--delay", type=float, help="多条命令之间的间隔 (秒)。")
    parser.add_argument("--config", type=Path, help="TOML 配置文件。")
    parser.add_argument("--profile", default="default", help="TOML 中的 profile 名称。")
    parser.add_argument("--env-file", type=Path, help=".env 文件路径。")
    parser.add_argument(
        "-c", "--command", dest="commands", action="append", default=[],
        help="要执行的命令，可重复指定。",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v 显示 INFO，-vv 显示 DEBUG。")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("words", nargs="*", help="拼接为一条命令的参数。")
    return parser


def resolve_config(args: argparse.Namespace) -> RconConfig:
    """按 环境变量 < TOML < 命令行 的优先级合并配置。"""
    if args.sourceengine and args.minecraft:
        raise ConfigError("--minecraft 与 --sourceengine 不能同时使用")

    raw = dict(read_env_values(args.env_file))
    if args.config is not None:
        raw.update(read_toml_section(args.config, args.profile))

    if args.sourceengine:
        raw["protocol"] = constants.PROTOCOL_SOURCE
    elif args.minecraft:
        raw["protocol"] = constants.PROTOCOL_MINECRAFT
    elif "protocol" not in raw:
        raise ConfigError("必须指定 --minecraft 或 --sourceengine")

    overrides = {
        "address": args.address,
        "port": args.port,
        "password": args.password,
        "timeout": args.timeout,
        "command_delay": args.delay,
    }
    raw.update({k: v for k, v in overrides.items() if v is not None})
    # 未指定密码时按空密码处理，由服务器决定是否接受
    raw.setdefault("password", "")
    return create_config_from_dict(raw)


def collect_commands(args: argparse.Namespace) -> list[str]:
    commands = list(args.commands)
    if args.words:
        commands.append(" ".join(args.words))
    if not commands or not all(cmd.strip() for cmd in commands):
        raise ConfigError("未指定要执行的命令")
    return commands


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S")

    try:
        config = resolve_config(args)
        commands = collect_commands(args)
    except ConfigError as ce:
        print(f"配置错误: {ce}", file=sys.stderr)
        return EXIT_CONFIG

    logger.debug(f"配置加载完成: {config!r}")

    try:
        with RconCore(config) as core:
            core.login()
            for _, output in core.execute_all(commands):
                print(output)
    except AuthenticationRejected as ae:
        print(f"认证失败 (密码错误?): {ae}", file=sys.stderr)
        return EXIT_AUTH_REJECTED
    except RconError as e:
        phase = e.phase.value if e.phase else "unknown"
        print(f"[{phase}] {e}", file=sys.stderr)
        return EXIT_FAILURE

    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())

"""ws_echo/config.py

Node parameters. Every parameter is declared once with its default, can be
overridden from the environment (WS_ECHO_<FLAG>, e.g. --idle-timeout is
WS_ECHO_IDLE_TIMEOUT) and then from the command
line. Command line wins over environment, environment wins over defaults.
"""

import argparse
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence


ENV_PREFIX = "WS_ECHO_"


@dataclass
class EchoParams:
    host: str = "127.0.0.1"
    port: int = 8080

    # codec settings (websockets.serve)
    ping_interval: Optional[float] = 20.0
    ping_timeout: Optional[float] = 20.0
    close_timeout: float = 2.0
    max_size: int = 1_000_000

    # close connections that stay silent this long; None disables
    idle_timeout_s: Optional[float] = None

    log_level: str = "INFO"


def _port(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port: {value!r}")
    if not 0 <= port <= 65535:
        raise argparse.ArgumentTypeError(f"port out of range: {port}")
    return port


def _non_negative(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}")
    if number < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {value}")
    return number


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return number


def _disabled_if_zero(value: Optional[float]) -> Optional[float]:
    if value is None or value == 0:
        return None
    return value


def build_arg_parser(environ: Optional[Mapping[str, str]] = None) -> argparse.ArgumentParser:
    env = os.environ if environ is None else environ
    defaults = EchoParams()

    def declare(flag: str, name: str, default, **kwargs) -> None:
        # --idle-timeout -> WS_ECHO_IDLE_TIMEOUT
        env_value = env.get(ENV_PREFIX + flag.lstrip("-").replace("-", "_").upper())
        parser.add_argument(
            flag,
            dest=name,
            default=env_value if env_value is not None else default,
            **kwargs,
        )

    parser = argparse.ArgumentParser(
        prog="ws_echo_node",
        description="WebSocket echo server: every text or binary message is sent back unchanged.",
    )
    declare("--host", "host", defaults.host, help="address to bind")
    declare("--port", "port", defaults.port, type=_port, help="port to bind (0 picks a free one)")
    declare("--ping-interval", "ping_interval", defaults.ping_interval, type=_non_negative,
            help="seconds between keepalive pings, 0 disables")
    declare("--ping-timeout", "ping_timeout", defaults.ping_timeout, type=_non_negative,
            help="seconds to wait for a pong, 0 disables")
    declare("--close-timeout", "close_timeout", defaults.close_timeout, type=_non_negative,
            help="seconds to wait for the closing handshake")
    declare("--max-size", "max_size", defaults.max_size, type=_positive_int,
            help="largest accepted message in bytes")
    declare("--idle-timeout", "idle_timeout_s", 0.0, type=_non_negative,
            help="close a connection after this many silent seconds, 0 disables")
    declare("--log-level", "log_level", defaults.log_level,
            type=str.upper, choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    return parser


def params_from_args(
    argv: Optional[Sequence[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> EchoParams:
    """Build EchoParams from command line arguments and environment.

    argparse applies ``type`` to string defaults too, so environment values go
    through the same validation as flags.
    """
    args = build_arg_parser(environ).parse_args(argv)
    return EchoParams(
        host=args.host,
        port=args.port,
        ping_interval=_disabled_if_zero(args.ping_interval),
        ping_timeout=_disabled_if_zero(args.ping_timeout),
        close_timeout=args.close_timeout,
        max_size=args.max_size,
        idle_timeout_s=_disabled_if_zero(args.idle_timeout_s),
        log_level=args.log_level,
    )

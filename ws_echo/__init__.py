from ws_echo.config import EchoParams, params_from_args
from ws_echo.connection import Connection, echo_loop
from ws_echo.echo_node import EchoServerNode, main

__all__ = [
    "Connection",
    "EchoParams",
    "EchoServerNode",
    "echo_loop",
    "main",
    "params_from_args",
]

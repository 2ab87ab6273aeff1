#
# src/testrelay/server/__init__.py
#
"""
Result socket server: framing, typed events and the asyncio listener.
"""
from .events import (
    ConnectEvent,
    DisconnectEvent,
    ErrorEvent,
    LogEvent,
    ResultEvent,
    ServerEvent,
    StartEvent,
)
from .framing import FrameDecoder, decode_payload, encode_frame
from .result_server import ResultServer

__all__ = [
    "ConnectEvent",
    "DisconnectEvent",
    "ErrorEvent",
    "FrameDecoder",
    "LogEvent",
    "ResultEvent",
    "ResultServer",
    "ServerEvent",
    "StartEvent",
    "decode_payload",
    "encode_frame",
]

# 🔼⚙️

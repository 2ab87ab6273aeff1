# src/testrelay/server/events.py

"""
Typed events published by the result server.
"""

from typing import ClassVar, TypeAlias

from attrs import define, field


@define(frozen=True, slots=True)
class ConnectEvent:
    kind: ClassVar[str] = "connect"
    peer: str = field(default="")


@define(frozen=True, slots=True)
class StartEvent:
    """The launcher began executing a test."""
    kind: ClassVar[str] = "start"
    test: str = field()


@define(frozen=True, slots=True)
class ResultEvent:
    """The launcher finished a test and reported its outcome."""
    kind: ClassVar[str] = "result"
    test: str = field()
    outcome: str = field()
    message: str = field(default="")
    traceback: str = field(default="")


@define(frozen=True, slots=True)
class LogEvent:
    kind: ClassVar[str] = "log"
    message: str = field()


@define(frozen=True, slots=True)
class ErrorEvent:
    """A diagnostic from the launcher, or a protocol problem seen by the server."""
    kind: ClassVar[str] = "error"
    message: str = field()


@define(frozen=True, slots=True)
class DisconnectEvent:
    kind: ClassVar[str] = "socket.disconnected"
    peer: str = field(default="")


ServerEvent: TypeAlias = ConnectEvent | StartEvent | ResultEvent | LogEvent | ErrorEvent | DisconnectEvent

# 🔼⚙️
